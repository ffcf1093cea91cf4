"""
Request intake -- the gate every record passes before it is stored.

The sync engine trusts the event store without re-checking, so this is
the only place plant and claim requests are validated:

- both public keys decode, and are stored in canonical form
- both signatures decode and verify against their canonical messages
- a plant's image decodes, and the treasure was not planted before
- a claim's treasure exists and has not been claimed before

The image is only checked for valid base64. Its format is not inspected.
"""

from __future__ import annotations

import logging

from . import crypto
from .errors import TreasureAlreadyClaimed, TreasureExists
from .models import ClaimRequest, PlantRequest
from .store import EventStore

logger = logging.getLogger("geonft.intake")


def accept_plant(store: EventStore, request: PlantRequest) -> PlantRequest:
    """Validate and record a plant request.

    Args:
        store: Event store receiving the record.
        request: The request as submitted.

    Returns:
        The stored request, with canonically encoded keys.

    Raises:
        DecodeError: If a key, signature, or the image is malformed.
        SignatureInvalid: If either signature fails.
        TreasureExists: If the treasure was already planted.
    """
    canonical = request.model_copy(update={
        "account_public_key": crypto.canonical_key(request.account_public_key),
        "treasure_public_key": crypto.canonical_key(request.treasure_public_key),
    })

    if store.has_plant(canonical.treasure_public_key):
        raise TreasureExists(f"treasure {canonical.treasure_public_key} is already planted")

    crypto.verify_plant_request(canonical)
    store.add_plant(canonical)
    logger.info(
        "Treasure %s planted by %s",
        canonical.treasure_public_key,
        canonical.account_public_key,
    )
    return canonical


def accept_claim(store: EventStore, request: ClaimRequest) -> ClaimRequest:
    """Validate and record a claim request.

    Args:
        store: Event store receiving the record.
        request: The request as submitted.

    Returns:
        The stored request, with canonically encoded keys.

    Raises:
        DecodeError: If a key or signature is malformed.
        TreasureNotFound: If the treasure was never planted.
        TreasureAlreadyClaimed: If the treasure already has a claim.
        SignatureInvalid: If either signature fails.
    """
    canonical = request.model_copy(update={
        "account_public_key": crypto.canonical_key(request.account_public_key),
        "treasure_public_key": crypto.canonical_key(request.treasure_public_key),
    })
    treasure_pk = canonical.treasure_public_key

    plant_exists = store.has_plant(treasure_pk)
    if plant_exists and store.has_claim(treasure_pk):
        raise TreasureAlreadyClaimed(f"treasure {treasure_pk} is already claimed")

    crypto.verify_claim_request(canonical, plant_exists)
    store.add_claim(canonical)
    logger.info("Treasure %s claimed by %s", treasure_pk, canonical.account_public_key)
    return canonical
