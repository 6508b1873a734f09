# tests/test_keys.py
from __future__ import annotations

import re
from uuid import uuid4

import pytest

from app.schemas.enums import UploadVariant
from app.services.keys import (
    IdentityKeyDeriver,
    RandomKeyDeriver,
    build_key_deriver,
    random_token,
)
from tests.fixtures.fakes import make_asset

_B64URL = re.compile(r"^[A-Za-z0-9_-]+$")


def test_identity_key_is_deterministic_per_asset_and_variant():
    asset = make_asset(uuid4())
    d = IdentityKeyDeriver()
    assert d.derive_key(asset, "mp4", UploadVariant.VIDEO) == f"videos/{asset.id}.mp4"
    assert d.derive_key(asset, ".PNG", UploadVariant.THUMBNAIL) == f"thumbnails/{asset.id}.png"


def test_random_token_is_256_bits_of_unpadded_base64url():
    tok = random_token()
    assert len(tok) == 43  # ceil(32 * 4 / 3) without padding
    assert _B64URL.match(tok)


def test_random_keys_do_not_collide_over_10k_derivations():
    asset = make_asset(uuid4())
    d = RandomKeyDeriver()
    keys = {d.derive_key(asset, "mp4", UploadVariant.VIDEO) for _ in range(10_000)}
    assert len(keys) == 10_000
    assert all(k.startswith("videos/") and k.endswith(".mp4") for k in keys)


@pytest.mark.parametrize("ext", ["", ".", "mp4/../x", "m p4"])
def test_bad_extensions_are_rejected(ext):
    with pytest.raises(ValueError):
        IdentityKeyDeriver().derive_key(make_asset(), ext, UploadVariant.VIDEO)


def test_factory():
    assert isinstance(build_key_deriver("identity"), IdentityKeyDeriver)
    assert isinstance(build_key_deriver("random"), RandomKeyDeriver)
    with pytest.raises(ValueError):
        build_key_deriver("sequential")  # type: ignore[arg-type]
