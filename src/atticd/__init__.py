"""atticd: self-hosted Nix binary cache server."""

__version__ = "0.1.0"
