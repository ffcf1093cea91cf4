"""
Signature protocol for plant and claim requests.

Keys are Ed25519 public keys in bech32 text form. Signatures are
base64-encoded Ed25519 signatures over a canonical message:

    plant / account   b"plant" + encode(treasure_pk)
    plant / treasure  b"plant" + encode(account_pk) + sha256(image)
    claim / account   b"claim" + encode(treasure_pk)
    claim / treasure  b"claim" + encode(account_pk)

A plant is authentic when both plant signatures verify. A claim is
authentic when both claim signatures verify and the treasure it names
has already been planted.
"""

from __future__ import annotations

import base64
import binascii
import hashlib
import logging

import bech32
from cryptography.exceptions import InvalidSignature
from cryptography.hazmat.primitives.asymmetric.ed25519 import (
    Ed25519PrivateKey,
    Ed25519PublicKey,
)
from cryptography.hazmat.primitives.serialization import Encoding, PublicFormat

from .errors import DecodeError, SignatureInvalid, TreasureNotFound
from .models import ClaimRequest, PlantRequest

logger = logging.getLogger("geonft.crypto")

KEY_HRP = "geonft"
KEY_LENGTH = 32
SIGNATURE_LENGTH = 64

PLANT_PREFIX = b"plant"
CLAIM_PREFIX = b"claim"


def public_key_bytes(key: Ed25519PublicKey) -> bytes:
    """Raw 32-byte form of a public key."""
    return key.public_bytes(Encoding.Raw, PublicFormat.Raw)


def decode_key(encoded: str) -> Ed25519PublicKey:
    """Decode a bech32 public key.

    Raises:
        DecodeError: On a bad checksum, wrong prefix, or wrong length.
    """
    hrp, data = bech32.bech32_decode(encoded)
    if hrp is None or data is None:
        raise DecodeError(f"not a valid bech32 key: {encoded!r}")
    if hrp != KEY_HRP:
        raise DecodeError(f"unexpected key prefix {hrp!r}, wanted {KEY_HRP!r}")
    raw = bech32.convertbits(data, 5, 8, False)
    if raw is None or len(raw) != KEY_LENGTH:
        raise DecodeError(f"key must be {KEY_LENGTH} bytes: {encoded!r}")
    try:
        return Ed25519PublicKey.from_public_bytes(bytes(raw))
    except ValueError as exc:
        raise DecodeError(f"not an Ed25519 key: {encoded!r}") from exc


def encode_key(key: Ed25519PublicKey) -> str:
    """Canonical bech32 text form of a public key."""
    return bech32.bech32_encode(KEY_HRP, bech32.convertbits(public_key_bytes(key), 8, 5))


def canonical_key(encoded: str) -> str:
    """Decode and re-encode a key, normalising case."""
    return encode_key(decode_key(encoded))


def decode_signature(encoded: str) -> bytes:
    """Decode a base64 signature.

    Raises:
        DecodeError: If the text is not base64 or not a 64-byte signature.
    """
    try:
        raw = base64.b64decode(encoded, validate=True)
    except (binascii.Error, ValueError) as exc:
        raise DecodeError(f"signature is not valid base64: {exc}") from exc
    if len(raw) != SIGNATURE_LENGTH:
        raise DecodeError(f"signature must be {SIGNATURE_LENGTH} bytes, got {len(raw)}")
    return raw


def encode_signature(signature: bytes) -> str:
    return base64.b64encode(signature).decode("ascii")


def decode_image(encoded: str) -> bytes:
    """Decode a base64 treasure image.

    Raises:
        DecodeError: If the text is not base64.
    """
    try:
        return base64.b64decode(encoded, validate=True)
    except (binascii.Error, ValueError) as exc:
        raise DecodeError(f"image is not valid base64: {exc}") from exc


def digest(image: bytes) -> bytes:
    """Binary SHA-256 digest of an image."""
    return hashlib.sha256(image).digest()


def plant_account_message(treasure_pk: Ed25519PublicKey) -> bytes:
    return PLANT_PREFIX + encode_key(treasure_pk).encode("ascii")


def plant_treasure_message(account_pk: Ed25519PublicKey, image: bytes) -> bytes:
    return PLANT_PREFIX + encode_key(account_pk).encode("ascii") + digest(image)


def claim_account_message(treasure_pk: Ed25519PublicKey) -> bytes:
    return CLAIM_PREFIX + encode_key(treasure_pk).encode("ascii")


def claim_treasure_message(account_pk: Ed25519PublicKey) -> bytes:
    return CLAIM_PREFIX + encode_key(account_pk).encode("ascii")


def verify(pubkey: Ed25519PublicKey, message: bytes, signature: bytes) -> bool:
    """Check an Ed25519 signature."""
    try:
        pubkey.verify(signature, message)
    except InvalidSignature:
        return False
    return True


def _require(pubkey: Ed25519PublicKey, message: bytes, signature: bytes, what: str) -> None:
    if not verify(pubkey, message, signature):
        raise SignatureInvalid(f"{what} signature does not verify")


def verify_plant_request(request: PlantRequest) -> None:
    """Verify both signatures of a plant request.

    Raises:
        DecodeError: If a key, signature, or the image is malformed.
        SignatureInvalid: If either signature fails.
    """
    account_pk = decode_key(request.account_public_key)
    treasure_pk = decode_key(request.treasure_public_key)
    account_sig = decode_signature(request.account_signature)
    treasure_sig = decode_signature(request.treasure_signature)
    image = decode_image(request.image)

    _require(treasure_pk, plant_treasure_message(account_pk, image), treasure_sig, "treasure")
    _require(account_pk, plant_account_message(treasure_pk), account_sig, "account")


def verify_claim_request(request: ClaimRequest, plant_exists: bool) -> None:
    """Verify both signatures of a claim request.

    Args:
        request: The claim to check.
        plant_exists: Whether a plant record exists for the treasure.

    Raises:
        TreasureNotFound: If the treasure was never planted.
        DecodeError: If a key or signature is malformed.
        SignatureInvalid: If either signature fails.
    """
    if not plant_exists:
        raise TreasureNotFound(f"treasure {request.treasure_public_key} does not exist")

    account_pk = decode_key(request.account_public_key)
    treasure_pk = decode_key(request.treasure_public_key)
    account_sig = decode_signature(request.account_signature)
    treasure_sig = decode_signature(request.treasure_signature)

    _require(treasure_pk, claim_treasure_message(account_pk), treasure_sig, "treasure")
    _require(account_pk, claim_account_message(treasure_pk), account_sig, "account")


def is_authentic_plant(request: PlantRequest) -> bool:
    try:
        verify_plant_request(request)
    except (DecodeError, SignatureInvalid) as exc:
        logger.debug("plant request rejected: %s", exc)
        return False
    return True


def is_authentic_claim(request: ClaimRequest, plant_exists: bool) -> bool:
    try:
        verify_claim_request(request, plant_exists)
    except (DecodeError, SignatureInvalid, TreasureNotFound) as exc:
        logger.debug("claim request rejected: %s", exc)
        return False
    return True


def sign_plant_request(
    account_key: Ed25519PrivateKey,
    treasure_key: Ed25519PrivateKey,
    image: bytes,
) -> PlantRequest:
    """Build a fully signed plant request from two private keys."""
    account_pk = account_key.public_key()
    treasure_pk = treasure_key.public_key()
    return PlantRequest(
        account_public_key=encode_key(account_pk),
        treasure_public_key=encode_key(treasure_pk),
        image=base64.b64encode(image).decode("ascii"),
        account_signature=encode_signature(
            account_key.sign(plant_account_message(treasure_pk))
        ),
        treasure_signature=encode_signature(
            treasure_key.sign(plant_treasure_message(account_pk, image))
        ),
    )


def sign_claim_request(
    account_key: Ed25519PrivateKey,
    treasure_key: Ed25519PrivateKey,
) -> ClaimRequest:
    """Build a fully signed claim request from two private keys."""
    account_pk = account_key.public_key()
    treasure_pk = treasure_key.public_key()
    return ClaimRequest(
        account_public_key=encode_key(account_pk),
        treasure_public_key=encode_key(treasure_pk),
        account_signature=encode_signature(
            account_key.sign(claim_account_message(treasure_pk))
        ),
        treasure_signature=encode_signature(
            treasure_key.sign(claim_treasure_message(account_pk))
        ),
    )
