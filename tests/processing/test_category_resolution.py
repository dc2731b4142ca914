import uuid
from types import SimpleNamespace

import pytest

from backend.app.models import CategoryType
from backend.app.processing.categories import (
    CategoryLiteral,
    CategoryRef,
    category_value_of,
    match_category,
    parse_category_value,
    resolve_category,
)


def category(name, category_type=CategoryType.neutral, domains=(), applications=()):
    return SimpleNamespace(
        id=uuid.uuid4(), name=name, type=category_type, domains=list(domains), applications=list(applications)
    )


@pytest.mark.parametrize("raw, expected", [
    ("productive", CategoryLiteral(CategoryType.productive)),
    (" Distracting ", CategoryLiteral(CategoryType.distracting)),
    (CategoryType.neutral, CategoryLiteral(CategoryType.neutral)),
    (None, None),
    ("", None),
    ("gibberish", None),
    (42, None),
])
def test_parse_literal_values(raw, expected):
    assert parse_category_value(raw) == expected


def test_parse_reference_values():
    category_id = uuid.uuid4()
    assert parse_category_value(category_id) == CategoryRef(category_id)
    assert parse_category_value(str(category_id)) == CategoryRef(category_id)
    assert parse_category_value({"id": str(category_id), "name": "Dev"}) == CategoryRef(category_id)


def test_stored_tag_takes_precedence_over_reference():
    row = SimpleNamespace(category_tag=CategoryType.distracting, category_id=uuid.uuid4())
    assert category_value_of(row) == CategoryLiteral(CategoryType.distracting)
    assert category_value_of(SimpleNamespace(category_tag=None, category_id=None)) is None


def test_match_uses_first_listing_category():
    entertainment = category("Entertainment", domains=["twitch.tv", "youtube.com"])
    gaming = category("Gaming", domains=["twitch.tv"])
    assert match_category("twitch.tv", None, [entertainment, gaming]) is entertainment
    assert match_category("twitch.tv", None, [gaming, entertainment]) is gaming


def test_match_by_domain_does_not_fall_back_to_application():
    tools = category("Tools", applications=["Chrome"])
    assert match_category("unknown.example", "Chrome", [tools]) is None
    assert match_category(None, "Chrome", [tools]) is tools


def test_resolve_literal_and_reference():
    dev = category("Development", CategoryType.productive)

    literal = resolve_category(CategoryLiteral(CategoryType.distracting), {})
    assert (literal.key, literal.type) == ("distracting", CategoryType.distracting)

    ref = resolve_category(CategoryRef(dev.id), {dev.id: dev})
    assert ref.name == "Development"
    assert ref.type == CategoryType.productive
    assert ref.category_id == dev.id

    assert resolve_category(CategoryRef(uuid.uuid4()), {dev.id: dev}) is None
    assert resolve_category(None, {}) is None
