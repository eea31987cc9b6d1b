# Dokku Web Installer
