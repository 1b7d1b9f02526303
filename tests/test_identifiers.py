"""Tests for media ids and slugs."""

import re

import pytest

from pintag.identifiers import generate_media_id, slugify


def test_media_id_shape():
    ids = {generate_media_id() for _ in range(200)}
    assert len(ids) == 200
    for media_id in ids:
        assert re.fullmatch(r"[A-Za-z0-9_-]{10}", media_id)


@pytest.mark.parametrize("name,slug", [
    ("Summer 1985", "summer-1985"),
    ("  Grandma's 80th -- Party!  ", "grandma-s-80th-party"),
    ("ÉTÉ à Paris", "t-paris"),
    ("---", ""),
])
def test_slugify(name, slug):
    assert slugify(name) == slug
