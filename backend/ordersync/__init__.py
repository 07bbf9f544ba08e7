"""Order-file sync: SFTP order files into the commerce platform."""

__version__ = "0.1.0"
