# Dokku Installer
__version__ = '0.3.17'

__all__ = ['__version__']
