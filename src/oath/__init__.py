"""
oath - encrypted TOTP seeds for the command line.

Keeps one-time-password seeds encrypted with your GPG key and prints the
current 6 digit code on demand.

Features:
- add: Store a seed via hidden input (never on disk in plaintext)
- show: Print the current code and copy it to the clipboard
- delete: Remove a seed after proving it can still be decrypted
- list: Show stored identifiers (no values)

Requires: gpg (for encryption)
"""

__version__ = "0.1.0"
