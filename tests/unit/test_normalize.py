from lawdir.pipeline.normalize import (
    first_present,
    format_location,
    from_card,
    from_embedded,
    from_schema_org,
    practice_areas_from_schema,
)


def test_plain_string_address_is_verbatim():
    assert format_location("123 Main St, Springfield IL") == "123 Main St, Springfield IL"


def test_structured_address_skips_empty_parts():
    address = {"addressLocality": "Springfield", "addressRegion": "IL", "postalCode": ""}
    assert format_location(address) == "Springfield, IL"


def test_structured_address_with_postal_code():
    address = {"@type": "PostalAddress", "addressLocality": "Mobile", "addressRegion": "AL", "postalCode": "36602"}
    assert format_location(address) == "Mobile, AL, 36602"


def test_missing_address_is_empty():
    assert format_location(None) == ""


def test_practice_areas_prefer_knows_about():
    entry = {"knowsAbout": ["Bankruptcy", {"name": "Debt Relief"}], "areaServed": "Alabama"}
    assert practice_areas_from_schema(entry) == ["Bankruptcy", "Debt Relief"]


def test_practice_areas_fall_back_to_area_served():
    assert practice_areas_from_schema({"areaServed": "Alabama"}) == ["Alabama"]
    assert practice_areas_from_schema({"areaServed": {"@type": "State", "name": "Texas"}}) == ["Texas"]
    assert practice_areas_from_schema({}) == []


def test_first_present_order_and_dotted_paths():
    raw = {"fullName": "", "name": "Jane", "data": {"phone": "555"}}
    assert first_present(raw, "fullName", "name") == "Jane"
    assert first_present(raw, "data.phone") == "555"
    assert first_present(raw, "missing", "data.missing") is None


def test_from_schema_org_maps_rating_and_url():
    entry = {
        "@type": "Attorney",
        "name": "Jane Roe",
        "url": "https://www.avvo.com/attorneys/jane-roe.html",
        "telephone": "(205) 555-0100",
        "description": "Bankruptcy attorney.",
        "aggregateRating": {"ratingValue": "9.7", "reviewCount": "31"},
        "address": {"addressLocality": "Springfield", "addressRegion": "IL"},
    }
    record = from_schema_org(entry)

    assert record.name == "Jane Roe"
    assert record.rating == 9.7
    assert record.review_count == 31
    assert record.location == "Springfield, IL"
    assert record.phone == "(205) 555-0100"
    assert record.profile_url == "https://www.avvo.com/attorneys/jane-roe.html"
    assert record.website == record.profile_url
    assert record.bio == "Bankruptcy attorney."


def test_from_schema_org_without_rating():
    record = from_schema_org({"@type": "Person"})
    assert record.name == "Unknown"
    assert record.rating is None
    assert record.review_count == 0


def test_from_embedded_uses_fallback_names():
    item = {
        "fullName": "John Poe",
        "avvoRating": 8.5,
        "reviews": [{}, {}, {}],
        "specialties": ["DUI", "Traffic"],
        "city": "Mobile",
        "phoneNumber": "555-0101",
        "websiteUrl": "https://poe.example",
        "yearAdmitted": "2004",
        "url": "https://www.avvo.com/attorneys/john-poe.html",
        "description": "Defense lawyer.",
    }
    record = from_embedded(item)

    assert record.name == "John Poe"
    assert record.rating == 8.5
    assert record.review_count == 3
    assert record.practice_areas == ["DUI", "Traffic"]
    assert record.location == "Mobile"
    assert record.phone == "555-0101"
    assert record.website == "https://poe.example"
    assert record.years_licensed == 2004
    assert record.profile_url == "https://www.avvo.com/attorneys/john-poe.html"
    assert record.bio == "Defense lawyer."


def test_from_embedded_primary_names_win():
    item = {"name": "A", "fullName": "B", "phone": "1", "phoneNumber": "2", "reviewCount": 4, "reviews": [{}]}
    record = from_embedded(item)
    assert record.name == "A"
    assert record.phone == "1"
    assert record.review_count == 4


def test_from_card_fills_defaults():
    record = from_card({"name": "Jane", "profile_url": "https://www.avvo.com/x", "rating": None, "languages": None})
    assert record.name == "Jane"
    assert record.rating is None
    assert record.languages == []
