"""
GeoNFT — a geographic treasure hunt with a verifiable trail.

Treasures are planted under their own keypair and claimed by players,
every record dual-signed. The sync engine publishes those records to
IPFS and Solana, one ordered step at a time.
"""

import os

__version__ = "0.1.0"

GEONFT_HOME = os.environ.get("GEONFT_HOME", "~/.geonft")
