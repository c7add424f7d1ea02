import json
from unittest.mock import MagicMock

from lawdir.pipeline.extractors import (
    EmbeddedDataStrategy,
    ExtractionPipeline,
    HtmlCardStrategy,
    JsonLdStrategy,
    find_listing_array,
    find_script_listing,
    iter_json_objects,
    iter_lawyer_entries,
)
from lawdir.schemas import LawyerRecord


def _page(html: str, url: str = "https://www.avvo.com/bankruptcy-debt-lawyer/al.html"):
    page = MagicMock()
    page.content.return_value = html
    page.url = url
    return page


def _ld(*blocks) -> str:
    scripts = "".join(
        f'<script type="application/ld+json">{b if isinstance(b, str) else json.dumps(b)}</script>'
        for b in blocks
    )
    return f"<html><head>{scripts}</head><body></body></html>"


ITEM_LIST = {
    "@context": "https://schema.org",
    "@type": "ItemList",
    "itemListElement": [
        {
            "@type": "ListItem",
            "position": 1,
            "item": {
                "@type": "Attorney",
                "name": "Jane Roe",
                "url": "https://www.avvo.com/attorneys/1.html",
                "knowsAbout": ["Bankruptcy", "Debt Relief"],
                "address": {"addressLocality": "Springfield", "addressRegion": "IL", "postalCode": ""},
            },
        },
        {
            "@type": "ListItem",
            "position": 2,
            "item": {
                "@type": "Attorney",
                "name": "John Poe",
                "url": "https://www.avvo.com/attorneys/2.html",
                "knowsAbout": ["Family Law"],
            },
        },
        {
            "@type": "ListItem",
            "position": 3,
            "item": {
                "@type": ["Person", "Attorney"],
                "name": "Ann Loe",
                "url": "https://www.avvo.com/attorneys/3.html",
                "knowsAbout": ["Estate Planning"],
            },
        },
    ],
}


# -------------------------
# JSON-LD
# -------------------------
def test_jsonld_item_list_yields_three_records():
    records = JsonLdStrategy().extract(_page(_ld(ITEM_LIST)))

    assert len(records) == 3
    assert [r.name for r in records] == ["Jane Roe", "John Poe", "Ann Loe"]
    assert records[0].practice_areas == ["Bankruptcy", "Debt Relief"]
    assert records[1].practice_areas == ["Family Law"]
    assert records[2].practice_areas == ["Estate Planning"]
    assert records[0].location == "Springfield, IL"


def test_jsonld_item_list_direct_elements():
    data = {"@type": "ItemList", "itemListElement": [{"@type": "Attorney", "name": "Direct Entry"}]}
    assert [e["name"] for e in iter_lawyer_entries(data)] == ["Direct Entry"]


def test_jsonld_bad_block_does_not_discard_siblings():
    good = {"@type": "Attorney", "name": "Good Entry", "url": "https://www.avvo.com/attorneys/g.html"}
    records = JsonLdStrategy().extract(_page(_ld("{not valid json", good)))

    assert [r.name for r in records] == ["Good Entry"]


def test_jsonld_graph_and_list_and_single_shapes():
    graph = {"@graph": [{"@type": "LegalService", "name": "Firm"}, {"@type": "WebPage", "name": "Page"}]}
    top_list = [{"@type": "Person", "name": "Listed"}, {"@type": "Organization", "name": "Skip"}]
    single = {"@type": "Attorney", "name": "Single"}

    records = JsonLdStrategy().extract(_page(_ld(graph, top_list, single)))

    assert [r.name for r in records] == ["Firm", "Listed", "Single"]


def test_jsonld_ignores_unrelated_types():
    records = JsonLdStrategy().extract(_page(_ld({"@type": "BreadcrumbList", "itemListElement": []})))
    assert records == []


def test_strategy_is_fail_soft():
    page = MagicMock()
    page.content.side_effect = RuntimeError("page closed")

    assert JsonLdStrategy().extract(page) == []
    assert EmbeddedDataStrategy().extract(page) == []
    assert HtmlCardStrategy().extract(page) == []


# -------------------------
# Embedded script data
# -------------------------
def test_json_objects_skip_non_json_braces():
    text = 'if (x) { run(); } window.__STATE__ = {"lawyers": [{"name": "A"}]}; cfg = {"b": 2};'
    assert list(iter_json_objects(text)) == [{"lawyers": [{"name": "A"}]}, {"b": 2}]
    assert list(iter_json_objects("no objects here")) == []


def test_script_listing_looks_past_objects_without_one():
    text = 'window.cfg = {"profiles": "off"}; window.__STATE__ = {"attorneys": [{"name": "B"}]};'
    assert find_script_listing(text) == [{"name": "B"}]

    # unquoted outer key: the inner object is still reached
    loose = 'var lawyerData = {page: {"lawyers": [{"name": "C"}]}};'
    assert find_script_listing(loose) == [{"name": "C"}]
    assert find_script_listing('var lawyerData = {"lawyers": []};') == []


def test_find_listing_array_nested_under_data():
    assert find_listing_array({"data": {"attorneys": [{"name": "A"}, "junk"]}}) == [{"name": "A"}]
    assert find_listing_array({"lawyers": []}) == []
    assert find_listing_array(["not", "a", "dict"]) == []


def test_embedded_strategy_reads_inline_state():
    state = {
        "data": {
            "lawyers": [
                {
                    "fullName": "Embedded Lawyer",
                    "phoneNumber": "555-0102",
                    "profileUrl": "https://www.avvo.com/attorneys/e.html",
                    "reviews": [{}, {}],
                }
            ]
        }
    }
    html = (
        '<html><body>'
        '<script src="https://cdn.example/app.js">"lawyers"</script>'
        '<script>var unrelated = {"a": 1};</script>'
        f'<script>window.__INITIAL_STATE__ = {json.dumps(state)};</script>'
        '</body></html>'
    )
    records = EmbeddedDataStrategy().extract(_page(html))

    assert len(records) == 1
    assert records[0].name == "Embedded Lawyer"
    assert records[0].phone == "555-0102"
    assert records[0].review_count == 2


def test_embedded_strategy_skips_unparseable_candidates():
    html = '<html><body><script>var lawyerData = {broken;</script></body></html>'
    assert EmbeddedDataStrategy().extract(_page(html)) == []


# -------------------------
# HTML cards
# -------------------------
CARDS_HTML = """
<html><body>
  <div class="lawyer-card">
    <h2><a href="/attorneys/35203-al-jane-doe.html">Jane Doe</a></h2>
    <span class="rating-value">Rating: 9.8</span>
    <span class="review-count">42 reviews</span>
    <ul class="practice-areas"><li>Bankruptcy</li><li>Debt Relief</li></ul>
    <div class="location">Birmingham, AL</div>
    <a class="phone" href="tel:2055550100"></a>
    <div class="years-licensed">Licensed for 18 years</div>
    <p>Jane Doe has helped families in Birmingham through Chapter 7 and Chapter 13 filings.</p>
  </div>
  <div class="lawyer-card"><em>Sponsored</em></div>
</body></html>
"""


def test_html_cards_extract_fields():
    records = HtmlCardStrategy().extract(_page(CARDS_HTML))

    assert len(records) == 1
    r = records[0]
    assert r.name == "Jane Doe"
    assert r.profile_url == "https://www.avvo.com/attorneys/35203-al-jane-doe.html"
    assert r.rating == 9.8
    assert r.review_count == 42
    assert r.practice_areas == ["Bankruptcy", "Debt Relief"]
    assert r.location == "Birmingham, AL"
    assert r.phone == "2055550100"
    assert r.years_licensed == 18
    assert r.bio.startswith("Jane Doe has helped families")


def test_html_cards_practice_areas_comma_fallback():
    html = """
    <div class="lawyer-card">
      <h3><a href="https://www.avvo.com/attorneys/x.html">X Lawyer</a></h3>
      <div class="practice-areas">Bankruptcy, DUI, Family Law, IP</div>
      <p>short</p>
    </div>
    """
    records = HtmlCardStrategy().extract(_page(html))

    assert records[0].practice_areas == ["Bankruptcy", "DUI", "Family Law"]
    assert records[0].bio == ""


def test_html_cards_none_found():
    assert HtmlCardStrategy().extract(_page("<html><body><div>Nothing</div></body></html>")) == []


# -------------------------
# Pipeline
# -------------------------
def _strategy(label, records):
    s = MagicMock()
    s.label = label
    s.extract.return_value = records
    return s


def test_pipeline_short_circuits_on_first_hit():
    s1 = _strategy("JSON-LD", [LawyerRecord(name="A")])
    s2 = _strategy("Internal API", [LawyerRecord(name="B")])
    s3 = _strategy("HTML Parsing", [LawyerRecord(name="C")])

    records, label = ExtractionPipeline([s1, s2, s3]).extract(_page(""))

    assert label == "JSON-LD"
    assert [r.name for r in records] == ["A"]
    s2.extract.assert_not_called()
    s3.extract.assert_not_called()


def test_pipeline_falls_through_to_later_strategy():
    s1 = _strategy("JSON-LD", [])
    s2 = _strategy("Internal API", [])
    s3 = _strategy("HTML Parsing", [LawyerRecord(name="C")])

    records, label = ExtractionPipeline([s1, s2, s3]).extract(_page(""))

    assert label == "HTML Parsing"
    assert len(records) == 1


def test_pipeline_nothing_found():
    records, label = ExtractionPipeline().extract(_page("<html><body></body></html>"))
    assert records == []
    assert label == "None"


def test_default_pipeline_prefers_jsonld_over_cards():
    html = _ld(ITEM_LIST).replace("<body></body>", "<body>" + CARDS_HTML + "</body>")
    records, label = ExtractionPipeline().extract(_page(html))

    assert label == "JSON-LD"
    assert len(records) == 3
