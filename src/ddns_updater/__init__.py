"""
DDNS Updater - A dynamic DNS daemon.

This package keeps DNS records pointed at the public IP address of the host
it runs on, across one or more DNS providers (DigitalOcean, Hetzner Cloud).
"""

__version__ = "0.1.0"
__author__ = "DDNS Updater Contributors"
