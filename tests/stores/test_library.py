"""Tests for the versioned prompt library repository."""

from __future__ import annotations

import json

import pytest

from promptforge.stores.backends import MemoryStorageBackend
from promptforge.stores.library import (
    UNCATEGORIZED,
    PromptLibraryRepository,
    PromptNotFoundError,
    VersionNotFoundError,
    item_to_dict,
)

FILENAME = PromptLibraryRepository.DEFAULT_FILENAME


def _repo(backend, clock, id_factory) -> PromptLibraryRepository:
    return PromptLibraryRepository(backend, clock=clock, id_factory=id_factory)


def test_categories_and_tags_are_trimmed_and_reused(memory_backend, clock, id_factory) -> None:
    repo = _repo(memory_backend, clock, id_factory)

    first = repo.create_category("  Coding ")
    again = repo.create_category("coding")
    repo.create_category("api")
    tag = repo.create_tag("Review")

    assert first.name == "Coding"
    assert again is first
    assert [category.name for category in repo.categories] == ["api", "Coding"]
    assert repo.tag_names([tag.id, "missing"]) == ["Review"]
    with pytest.raises(ValueError):
        repo.create_tag("   ")


def test_persist_then_reload_round_trips(memory_backend, clock, id_factory) -> None:
    repo = _repo(memory_backend, clock, id_factory)
    beta = repo.create_category("beta")
    repo.create_category("Alpha")
    tag_z = repo.create_tag("zeta")
    tag_a = repo.create_tag("alpha")
    repo.create_prompt("Second", "body two", category_id=beta.id, tag_ids=[tag_z.id, tag_a.id])
    repo.create_prompt("first", "body one")

    reloaded = _repo(memory_backend, clock, id_factory)

    assert [category.name for category in reloaded.categories] == ["Alpha", "beta"]
    assert [tag.name for tag in reloaded.tags] == ["alpha", "zeta"]
    assert [prompt.title for prompt in reloaded.prompts] == ["first", "Second"]
    assert [item_to_dict(p) for p in reloaded.prompts] == [item_to_dict(p) for p in repo.prompts]
    assert reloaded.prompts[1].tag_ids == [tag_a.id, tag_z.id]


def test_stored_bundle_matches_documented_layout(memory_backend, clock, id_factory) -> None:
    repo = _repo(memory_backend, clock, id_factory)
    repo.create_prompt("Title", "Body")

    stored = json.loads(memory_backend.documents[FILENAME])

    assert set(stored) == {"categories", "tags", "prompts"}
    prompt = stored["prompts"][0]
    assert "categoryId" not in prompt
    assert prompt["createdAt"] == "2024-01-01T00:00:00Z"
    assert prompt["versions"] == [
        {"id": prompt["versions"][0]["id"], "createdAt": "2024-01-01T00:00:00Z", "content": "Body"}
    ]


def test_sixty_updates_leave_fifty_versions_newest_first(memory_backend, clock, id_factory) -> None:
    repo = _repo(memory_backend, clock, id_factory)
    prompt = repo.create_prompt("Versioned", "v0")

    for index in range(1, 61):
        repo.update_body(prompt.id, f"v{index}")

    versions = repo.versions(prompt.id)
    assert len(versions) == 50
    assert versions[0].content == "v60"
    assert versions[-1].content == "v11"
    timestamps = [version.created_at for version in versions]
    assert timestamps == sorted(timestamps, reverse=True)
    assert repo.get_prompt(prompt.id).body == "v60"


def test_identical_body_does_not_add_version(memory_backend, clock, id_factory) -> None:
    repo = _repo(memory_backend, clock, id_factory)
    prompt = repo.create_prompt("Same", "content")

    assert repo.add_version(prompt.id, "content") is None
    assert len(repo.versions(prompt.id)) == 1


def test_rollback_prepends_version_and_keeps_history(memory_backend, clock, id_factory) -> None:
    repo = _repo(memory_backend, clock, id_factory)
    prompt = repo.create_prompt("Rollback", "one")
    original = repo.versions(prompt.id)[0]
    repo.update_body(prompt.id, "two")

    restored = repo.rollback(prompt.id, original.id)

    versions = repo.versions(prompt.id)
    assert [version.content for version in versions] == ["one", "two", "one"]
    assert versions[0] is restored
    assert restored.note == f"Rollback to version {original.id}"
    assert repo.get_prompt(prompt.id).body == "one"


def test_unknown_ids_fail_without_mutation(memory_backend, clock, id_factory) -> None:
    repo = _repo(memory_backend, clock, id_factory)
    prompt = repo.create_prompt("Known", "body")
    before = memory_backend.documents[FILENAME]

    with pytest.raises(VersionNotFoundError):
        repo.rollback(prompt.id, "nope")
    with pytest.raises(PromptNotFoundError):
        repo.update_body("missing", "x")
    with pytest.raises(PromptNotFoundError):
        repo.delete_prompt("missing")

    assert memory_backend.documents[FILENAME] == before
    assert len(repo.versions(prompt.id)) == 1


def test_blank_title_or_body_is_rejected(memory_backend, clock, id_factory) -> None:
    repo = _repo(memory_backend, clock, id_factory)

    with pytest.raises(ValueError):
        repo.create_prompt("  ", "body")
    with pytest.raises(ValueError):
        repo.create_prompt("Title", "   ")
    assert repo.prompts == []


def test_search_matches_title_body_and_tags_with_category_filter(
    memory_backend, clock, id_factory
) -> None:
    repo = _repo(memory_backend, clock, id_factory)
    coding = repo.create_category("Coding")
    ui_tag = repo.create_tag("UI")
    repo.create_prompt("Refactor builder", "Split the module", category_id=coding.id)
    repo.create_prompt("Landing page", "Hero copy", tag_ids=[ui_tag.id])
    repo.create_prompt("Release notes", "Summarize the BUILDER changes")

    assert [p.title for p in repo.search("builder")] == ["Refactor builder", "Release notes"]
    assert [p.title for p in repo.search("builder", category_id=coding.id)] == ["Refactor builder"]
    assert [p.title for p in repo.search("ui")] == ["Landing page"]
    assert [p.title for p in repo.search("HERO")] == ["Landing page"]
    assert [p.title for p in repo.search("", tag_id=ui_tag.id)] == ["Landing page"]
    assert len(repo.search("  ")) == 3


def test_deleting_category_uncategorizes_prompts(memory_backend, clock, id_factory) -> None:
    repo = _repo(memory_backend, clock, id_factory)
    category = repo.create_category("Temp")
    prompt = repo.create_prompt("Keep me", "body", category_id=category.id)

    repo.delete_category(category.id)

    kept = repo.get_prompt(prompt.id)
    assert kept.category_id is None
    assert repo.category_name(kept.category_id) == UNCATEGORIZED
    assert kept.updated_at > kept.created_at


def test_deleting_tag_removes_references(memory_backend, clock, id_factory) -> None:
    repo = _repo(memory_backend, clock, id_factory)
    tag = repo.create_tag("old")
    prompt = repo.create_prompt("Tagged", "body", tag_ids=[tag.id])

    repo.delete_tag(tag.id)

    assert repo.get_prompt(prompt.id).tag_ids == []
    assert repo.tags == []


def test_update_prompt_changes_metadata_only(memory_backend, clock, id_factory) -> None:
    repo = _repo(memory_backend, clock, id_factory)
    category = repo.create_category("Docs")
    prompt = repo.create_prompt("Old", "body", category_id=category.id)

    repo.update_prompt(prompt.id, title=" New ")
    assert repo.get_prompt(prompt.id).category_id == category.id

    updated = repo.update_prompt(prompt.id, category_id=None)
    assert updated.title == "New"
    assert updated.category_id is None
    assert len(repo.versions(prompt.id)) == 1


def test_decode_failure_never_overwrites_stored_data(clock, id_factory) -> None:
    backend = MemoryStorageBackend({FILENAME: "{corrupt"})
    repo = _repo(backend, clock, id_factory)

    assert repo.persist_blocked
    repo.create_category("New")
    assert backend.documents[FILENAME] == "{corrupt"

    assert repo.persist(force=True)
    assert not repo.persist_blocked
    assert json.loads(backend.documents[FILENAME])["categories"][0]["name"] == "New"


def test_unrecognised_layout_is_left_untouched(clock, id_factory) -> None:
    raw = json.dumps({"prompts": 5})
    backend = MemoryStorageBackend({FILENAME: raw})

    repo = _repo(backend, clock, id_factory)
    repo.create_tag("t")

    assert repo.persist_blocked
    assert backend.documents[FILENAME] == raw


def test_legacy_layout_is_migrated_with_baseline_versions(clock, id_factory) -> None:
    legacy = {"prompts": [{"title": "", "body": "old text", "categoryId": "gone"}]}
    backend = MemoryStorageBackend({FILENAME: json.dumps(legacy)})

    repo = _repo(backend, clock, id_factory)

    prompt = repo.prompts[0]
    assert prompt.title == "Untitled Prompt"
    assert prompt.category_id is None
    assert [version.content for version in prompt.versions] == ["old text"]
    assert not repo.persist_blocked
    assert json.loads(backend.documents[FILENAME])["prompts"][0]["body"] == "old text"


def test_prompt_array_layout_is_accepted(clock, id_factory) -> None:
    item = {
        "id": "P1",
        "title": "Array",
        "body": "stale",
        "tagIds": [],
        "versions": [
            {"id": "V1", "createdAt": "2024-01-01T00:00:00Z", "content": "older"},
            {"id": "V2", "createdAt": "2024-02-01T00:00:00Z", "content": "newest"},
        ],
        "createdAt": "2024-01-01T00:00:00Z",
        "updatedAt": "2024-02-01T00:00:00Z",
    }
    backend = MemoryStorageBackend({FILENAME: json.dumps([item])})

    repo = _repo(backend, clock, id_factory)

    prompt = repo.get_prompt("P1")
    assert [version.id for version in prompt.versions] == ["V2", "V1"]
    assert prompt.body == "newest"


def _bundle_with_versions(*versions: dict) -> dict:
    return {
        "categories": [],
        "tags": [],
        "prompts": [
            {
                "id": "P1",
                "title": "History",
                "body": "v3",
                "tagIds": [],
                "versions": list(versions),
                "createdAt": "2024-01-01T00:00:00Z",
                "updatedAt": "2024-03-01T00:00:00Z",
            }
        ],
    }


def test_bad_version_entry_blocks_persist_and_keeps_history(clock, id_factory) -> None:
    raw = json.dumps(
        _bundle_with_versions(
            {"id": "V3", "createdAt": "2024-03-01T00:00:00Z", "content": "v3"},
            {"id": "V2", "createdAt": "not-a-date", "content": "v2"},
            {"id": "V1", "createdAt": "2024-01-01T00:00:00Z", "content": "v1"},
        )
    )
    backend = MemoryStorageBackend({FILENAME: raw})

    repo = _repo(backend, clock, id_factory)
    repo.create_category("Later")

    assert repo.persist_blocked
    assert repo.prompts == []
    assert backend.documents[FILENAME] == raw


def test_loading_current_bundle_does_not_rewrite_it(clock, id_factory) -> None:
    raw = json.dumps(
        _bundle_with_versions(
            {"id": "V1", "createdAt": "2024-01-01T00:00:00Z", "content": "v1"},
            {"id": "V3", "createdAt": "2024-03-01T00:00:00Z", "content": "v3"},
        )
    )
    backend = MemoryStorageBackend({FILENAME: raw})

    repo = _repo(backend, clock, id_factory)

    assert not repo.persist_blocked
    assert [version.id for version in repo.versions("P1")] == ["V3", "V1"]
    assert backend.documents[FILENAME] == raw


def test_legacy_bundle_keeps_versions_it_already_has(clock, id_factory) -> None:
    legacy = {
        "prompts": [
            {
                "id": "P1",
                "title": "Partly migrated",
                "body": "new",
                "versions": [
                    {"id": "V2", "createdAt": "2024-02-01T00:00:00Z", "content": "new"},
                    {"id": "V1", "createdAt": "2024-01-01T00:00:00Z", "content": "old"},
                ],
            }
        ]
    }
    backend = MemoryStorageBackend({FILENAME: json.dumps(legacy)})

    repo = _repo(backend, clock, id_factory)

    assert [version.id for version in repo.versions("P1")] == ["V2", "V1"]
    stored = json.loads(backend.documents[FILENAME])
    assert stored["categories"] == [] and stored["tags"] == []


def test_note_mentioning_rollback_does_not_duplicate_identical_body(
    memory_backend, clock, id_factory
) -> None:
    repo = _repo(memory_backend, clock, id_factory)
    prompt = repo.create_prompt("T", "same body")

    assert repo.add_version(prompt.id, "same body", "pre-rollback checkpoint") is None
    assert len(repo.versions(prompt.id)) == 1


def test_rollback_to_current_content_still_records_a_version(
    memory_backend, clock, id_factory
) -> None:
    repo = _repo(memory_backend, clock, id_factory)
    prompt = repo.create_prompt("T", "body")
    current = repo.versions(prompt.id)[0]

    restored = repo.rollback(prompt.id, current.id)

    assert [version.id for version in repo.versions(prompt.id)] == [restored.id, current.id]
    assert restored.note == f"Rollback to version {current.id}"
