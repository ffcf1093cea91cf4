"""Tests for the request intake gate."""

from __future__ import annotations

import pytest

from geonft import crypto
from geonft.errors import (
    DecodeError,
    SignatureInvalid,
    TreasureAlreadyClaimed,
    TreasureExists,
    TreasureNotFound,
)
from geonft.intake import accept_claim, accept_plant
from geonft.store import FileEventStore

from conftest import IMAGE


@pytest.fixture
def store(data_dir) -> FileEventStore:
    return FileEventStore(data_dir)


class TestAcceptPlant:
    """Tests for plant intake."""

    def test_valid_plant_stored(self, store, account_key, treasure_key):
        request = crypto.sign_plant_request(account_key, treasure_key, IMAGE)
        stored = accept_plant(store, request)
        assert store.get_plant(stored.treasure_public_key) == stored

    def test_keys_stored_canonically(self, store, account_key, treasure_key):
        request = crypto.sign_plant_request(account_key, treasure_key, IMAGE)
        shouting = request.model_copy(update={
            "account_public_key": request.account_public_key.upper(),
            "treasure_public_key": request.treasure_public_key.upper(),
        })
        stored = accept_plant(store, shouting)
        assert stored.treasure_public_key == request.treasure_public_key
        assert store.has_plant(request.treasure_public_key)

    def test_duplicate_plant_rejected(self, store, account_key, treasure_key):
        request = crypto.sign_plant_request(account_key, treasure_key, IMAGE)
        accept_plant(store, request)
        with pytest.raises(TreasureExists):
            accept_plant(store, request)

    def test_bad_signature_not_stored(self, store, account_key, treasure_key):
        request = crypto.sign_plant_request(account_key, treasure_key, IMAGE)
        bad = request.model_copy(update={"account_signature": request.treasure_signature})
        with pytest.raises(SignatureInvalid):
            accept_plant(store, bad)
        assert not store.has_plant(request.treasure_public_key)

    def test_malformed_key_rejected(self, store, account_key, treasure_key):
        request = crypto.sign_plant_request(account_key, treasure_key, IMAGE)
        with pytest.raises(DecodeError):
            accept_plant(store, request.model_copy(update={"treasure_public_key": "nope"}))
        assert store.events_time_sorted() == []


class TestAcceptClaim:
    """Tests for claim intake."""

    def test_valid_claim_stored(self, store, account_key, claimer_key, treasure_key):
        accept_plant(store, crypto.sign_plant_request(account_key, treasure_key, IMAGE))
        stored = accept_claim(store, crypto.sign_claim_request(claimer_key, treasure_key))
        assert store.get_claim(stored.treasure_public_key) == stored

    def test_claim_without_plant_rejected(self, store, claimer_key, treasure_key):
        request = crypto.sign_claim_request(claimer_key, treasure_key)
        with pytest.raises(TreasureNotFound):
            accept_claim(store, request)
        assert not store.has_claim(request.treasure_public_key)

    def test_second_claim_rejected(self, store, account_key, claimer_key, treasure_key):
        accept_plant(store, crypto.sign_plant_request(account_key, treasure_key, IMAGE))
        accept_claim(store, crypto.sign_claim_request(claimer_key, treasure_key))
        with pytest.raises(TreasureAlreadyClaimed):
            accept_claim(store, crypto.sign_claim_request(account_key, treasure_key))

    def test_bad_claim_signature_rejected(self, store, account_key, claimer_key, treasure_key):
        accept_plant(store, crypto.sign_plant_request(account_key, treasure_key, IMAGE))
        request = crypto.sign_claim_request(claimer_key, treasure_key)
        forged = request.model_copy(update={
            "account_public_key": crypto.encode_key(account_key.public_key()),
        })
        with pytest.raises(SignatureInvalid):
            accept_claim(store, forged)
        assert not store.has_claim(request.treasure_public_key)
