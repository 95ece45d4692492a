"""Read, edit, encrypt and decrypt Call of Duty 4 mpdata stats files."""

__version__ = "0.0.1"
__all__ = ["cli", "crypto", "iwm", "md4"]