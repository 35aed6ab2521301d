import pytest

from storefront.catalog.bundles import (
    BUNDLES,
    Bundle,
    BundleCatalog,
    bundle_to_dict,
    calculate_savings,
    default_catalog,
    format_price,
)

def test_default_catalog_prices():
    catalog = default_catalog()
    assert catalog.ids() == ["card-only", "love-pack", "deluxe-love"]
    assert catalog.price_of("card-only") == 2395
    assert catalog.price_of("love-pack") == 3795
    assert catalog.price_of("deluxe-love") == 5295
    assert catalog.get("deluxe-love").sku == "PMH-DELUXE"
    assert catalog.get("unknown") is None
    assert "love-pack" in catalog

def test_every_bundle_respects_price_bounds():
    for bundle in BUNDLES:
        assert 0 < bundle.price <= bundle.compare_at_price

@pytest.mark.parametrize("price,compare_at", [(0, 100), (-5, 100), (200, 100)])
def test_bundle_rejects_invalid_prices(price, compare_at):
    with pytest.raises(ValueError):
        Bundle(id="x", name="X", price=price, compare_at_price=compare_at, sku="X")

def test_bundle_rejects_non_integer_price():
    with pytest.raises(ValueError):
        Bundle(id="x", name="X", price=10.5, compare_at_price=20, sku="X")

def test_bundle_is_immutable():
    bundle = default_catalog().get("card-only")
    with pytest.raises(Exception):
        bundle.price = 1

def test_catalog_rejects_duplicates():
    b = Bundle(id="x", name="X", price=100, compare_at_price=100, sku="X")
    with pytest.raises(ValueError):
        BundleCatalog([b, b])

def test_format_price_and_savings():
    assert format_price(2395) == "$23.95"
    assert format_price(3500) == "$35.00"
    assert calculate_savings(default_catalog().get("deluxe-love")) == 2200

def test_bundle_to_dict():
    data = bundle_to_dict(default_catalog().get("love-pack"))
    assert data["compareAtPrice"] == 4995
    assert data["badge"] == "Most Popular"
    assert data["savings"] == 1200
    assert data["formattedPrice"] == "$37.95"
