"""Access key recovery for game title images.

Scans a title image for hex-looking candidate strings and verifies them
against a captured V0 (checksum) or V1 (HMAC-MD5 signature) packet.
"""

__version__ = "0.3.0"
