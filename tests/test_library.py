"""
tests/test_library.py - saving, linking, deleting and searching saved analyses
"""
import asyncio

from conftest import LONG_TEXT, saved
from newscompass.core.article import ArticleDraft, SimilarityLink, SimilarityVerdict


def draft(content, link=None, summary="Central bank raises rates", **kwargs):
    return ArticleDraft(
        summary=summary,
        bias_score="Center",
        bias_explanation="Neutral wording.",
        article_link=link,
        original_content=content,
        **kwargs,
    )


def test_new_article_is_linked_to_similar_saved_articles(library, store, classifier):
    asyncio.run(store.save(saved("old", "Earlier report. " + LONG_TEXT, days_ago=1)))
    classifier.verdicts["Earlier report. " + LONG_TEXT] = SimilarityVerdict(True, 0.92, "Same rate decision.")

    result = asyncio.run(library.save(draft(LONG_TEXT, link="https://example.com/new")))

    assert result.operation == "new"
    assert result.record.id != "old"
    assert result.record.similar_articles == [SimilarityLink("old", 0.92, "Same rate decision.")]
    assert asyncio.run(library.get(result.record.id)).similar_articles[0].id == "old"


def test_short_content_skips_similarity_check(library, store, classifier):
    asyncio.run(store.save(saved("old", LONG_TEXT)))

    result = asyncio.run(library.save(draft("x" * 40)))

    assert classifier.calls == []
    assert result.record.similar_articles == []


def test_resaving_a_link_updates_without_relinking(library, store, classifier):
    first = asyncio.run(library.save(draft(LONG_TEXT, link="https://example.com/a")))
    classifier.calls.clear()

    second = asyncio.run(library.save(draft(LONG_TEXT, link="https://example.com/a", summary="Updated")))

    assert second.operation == "updated"
    assert second.record.id == first.record.id
    assert second.record.summary == "Updated"
    assert classifier.calls == []
    assert len(asyncio.run(store.list_all())) == 1


def test_delete_removes_links_to_deleted_article(library, store):
    asyncio.run(store.save(saved("a1", LONG_TEXT, days_ago=1)))
    asyncio.run(store.save(saved("a2", LONG_TEXT, similar_articles=[SimilarityLink("a1", 0.9)])))

    assert asyncio.run(library.delete("a1"))
    assert asyncio.run(library.get("a2")).similar_articles == []


def test_details_for_linking(library, store):
    asyncio.run(store.save(saved("a1", LONG_TEXT, summary="S" * 100, source_name="AP", category="World")))

    details = asyncio.run(library.details_for_linking(["a1", "missing"]))

    assert details == [{
        "id": "a1",
        "title": "S" * 70 + "...",
        "source_name": "AP",
        "category": "World",
        "link": None,
    }]
    assert asyncio.run(library.details_for_linking([])) == []


def test_search_matches_across_fields(library, store, synonym_service):
    synonym_service.table["Automobile"] = ["car"]
    asyncio.run(store.save(saved("a1", "A red car crashed into a wall.", days_ago=2)))
    asyncio.run(store.save(saved("a2", "A blue car.", days_ago=1, neutral_summary="Painted red afterwards.")))
    asyncio.run(store.save(saved("a3", "A red bicycle.")))

    results = asyncio.run(library.search("Automobile red"))

    assert [a.id for a in results] == ["a2", "a1"]


def test_search_matches_similarity_reasoning(library, store):
    asyncio.run(store.save(saved(
        "a1", LONG_TEXT, similar_articles=[SimilarityLink("a0", 0.8, "Both cover the Geneva summit.")],
    )))
    assert [a.id for a in asyncio.run(library.search("geneva"))] == ["a1"]


def test_search_with_blank_query_returns_nothing(library, store, synonym_service):
    asyncio.run(store.save(saved("a1", LONG_TEXT)))
    assert asyncio.run(library.search("   ")) == []
    assert synonym_service.calls == []


def test_find_by_link_reports_failures_as_not_found(library, store, monkeypatch):
    async def broken(link):
        raise OSError("disk unavailable")

    monkeypatch.setattr(store, "find_by_link", broken)
    assert asyncio.run(library.find_by_link("https://example.com/a")) is None
