from __future__ import annotations

from planner.models import Resource
from planner.resource_catalog import ResourceCatalog, ResourceRule, default_catalog, resolve_catalog, slugify


def test_slugify() -> None:
    assert slugify("React Hooks & State!") == "react-hooks-state"


def test_documentation_prefers_topic_specific_pages() -> None:
    catalog = default_catalog()
    assert catalog.documentation_url("React", "Custom Hooks") == "https://react.dev/reference/react/hooks"
    assert catalog.documentation_url("React", "Routing") == "https://react.dev/learn"
    assert catalog.documentation_url("Underwater Basket Weaving") == catalog.default_documentation_url


def test_search_urls_are_encoded() -> None:
    catalog = default_catalog()
    assert catalog.video_search_url("C#", "LINQ") == "https://www.youtube.com/results?search_query=C%23+LINQ+tutorial"
    assert catalog.web_search_url("  python docs ") == "https://www.google.com/search?q=python+docs"


def test_curriculum_resources_pair_video_and_docs() -> None:
    resources = default_catalog().curriculum_resources("Python", "Decorators")
    assert [resource.type for resource in resources] == ["video", "article"]
    assert resources[1].url == "https://docs.python.org/3/tutorial/"


def test_topic_tiers_fall_back_to_templates() -> None:
    tiers = default_catalog().topic_tiers("Pottery")
    assert set(tiers) == {"beginner", "intermediate", "advanced"}
    assert all("Pottery" in topic for topic in tiers["beginner"])
    assert default_catalog().default_key_topics("Pottery", "Glazes") == tiers["beginner"][:3]


def test_custom_catalog_rules_and_copies() -> None:
    rule = ResourceRule(keywords=("chess",), resources=(Resource(title="Lichess", url="https://lichess.org"),))
    catalog = ResourceCatalog(subject_resources=(rule,))
    first = catalog.resources_for("Chess Openings")
    first[0].title = "changed"
    assert catalog.resources_for("Chess Openings")[0].title == "Lichess"
    assert catalog.resources_for("Knitting") == list(catalog.generic_resources)
    assert resolve_catalog(catalog) is catalog
    assert resolve_catalog(None) is default_catalog()
