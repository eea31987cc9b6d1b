"""Errors raised by the installer, grouped by how fatal they are."""


class InstallerError(Exception):
    """Base class for installer errors."""
    pass


class ProbeError(InstallerError):
    """An environment probe could not produce a value.

    Never fatal: the form field it feeds is left blank.
    """
    pass


class ConfigWriteError(InstallerError):
    """Committing the submitted setup failed; the operator must resubmit."""
    pass


class BootRegistrationError(InstallerError):
    """Installing the boot service or nginx rule failed."""
    pass


class TeardownError(InstallerError):
    """One self-destruct action failed. Logged, the others still run."""
    pass
