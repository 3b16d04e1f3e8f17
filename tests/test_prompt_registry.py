import threading
from collections import Counter
from concurrent.futures import ThreadPoolExecutor

import pytest

from contract_scanner.database.default_prompts import default_prompts
from contract_scanner.database.prompt_registry import (
    PromptRegistry,
    PromptRegistryError,
    verify_single_active,
)
from contract_scanner.database.prompt_store import InMemoryPromptStore
from contract_scanner.schemas.prompts import PromptCategory, PromptCreate, PromptDefinition


def active_ids(registry, category):
    return [p.id for p in registry.list() if p.category == category and p.is_active]


def test_defaults_when_nothing_stored(registry):
    """An empty store yields the built-in prompts in their fixed order."""
    assert [p.id for p in registry.list()] == [
        "contract-analysis",
        "negotiation-points",
        "executive-summary",
        "clause-comparison",
    ]
    assert registry.get_active(PromptCategory.ANALYSIS).id == "contract-analysis"
    assert registry.get_active(PromptCategory.CUSTOM) is None


def test_add_assigns_id_and_timestamp(registry):
    before = registry.list()
    definition = PromptCreate(
        name="Lease review",
        description="Residential lease checks",
        content="Review the lease for deposit and renewal terms.",
        category=PromptCategory.CUSTOM,
        is_active=False,
    )

    after = registry.add(definition)

    assert len(after) == len(before) + 1
    new = [p for p in after if p.id not in {b.id for b in before}]
    assert len(new) == 1
    added = new[0]
    assert added.id.startswith("custom-")
    assert added.last_modified > before[0].last_modified
    assert added.model_dump(include={"name", "description", "content", "category", "is_active"}) == \
        definition.model_dump(include={"name", "description", "content", "category", "is_active"})
    assert registry.list()[-1].id == added.id


def test_add_gives_unique_ids(registry):
    for index in range(5):
        registry.add({"name": f"p{index}", "content": "text"})
    ids = [p.id for p in registry.list()]
    assert len(ids) == len(set(ids))


def test_add_active_prompt_takes_over_category(registry):
    registry.add({"name": "Strict analysis", "content": "Be strict.", "category": "analysis", "isActive": True})

    active = registry.get_active(PromptCategory.ANALYSIS)
    assert active.name == "Strict analysis"
    assert len(active_ids(registry, PromptCategory.ANALYSIS)) == 1


def test_update_unknown_id_is_noop(registry):
    before = registry.list()
    assert registry.update("missing", {"content": "x"}) == before


def test_update_merges_fields_and_refreshes_timestamp(registry):
    original = registry.get("executive-summary")

    registry.update("executive-summary", {"content": "Summarize in three lines."})

    updated = registry.get("executive-summary")
    assert updated.content == "Summarize in three lines."
    assert updated.name == original.name
    assert updated.last_modified > original.last_modified


def test_update_rejects_unknown_fields(registry):
    with pytest.raises(ValueError):
        registry.update("executive-summary", {"colour": "blue"})


def test_update_activation_keeps_category_exclusive(registry):
    registry.update("clause-comparison", {"is_active": True})

    assert active_ids(registry, PromptCategory.ANALYSIS) == ["clause-comparison"]


def test_update_category_move_keeps_exclusive(registry):
    """Moving an active prompt into a category that already has one leaves one active."""
    registry.update("executive-summary", {"category": "negotiation"})

    assert active_ids(registry, PromptCategory.NEGOTIATION) == ["executive-summary"]
    assert active_ids(registry, PromptCategory.SUMMARY) == []


def test_set_active_replaces_sibling(registry):
    registry.set_active("clause-comparison", True)
    assert active_ids(registry, PromptCategory.ANALYSIS) == ["clause-comparison"]

    registry.set_active("contract-analysis", True)

    assert active_ids(registry, PromptCategory.ANALYSIS) == ["contract-analysis"]
    # Other categories are untouched
    assert active_ids(registry, PromptCategory.SUMMARY) == ["executive-summary"]


def test_set_active_false_only_clears_target(registry):
    registry.set_active("contract-analysis", False)

    assert registry.get_active(PromptCategory.ANALYSIS) is None
    assert registry.get("clause-comparison").is_active is False


def test_set_active_unknown_id_is_noop(registry):
    before = registry.list()
    assert registry.set_active("missing", True) == before


def test_delete(registry):
    registry.delete("clause-comparison")
    assert registry.get("clause-comparison") is None

    # Deleting twice does nothing
    assert len(registry.delete("clause-comparison")) == 3


def test_reset_to_defaults_is_idempotent(registry):
    registry.add({"name": "custom", "content": "text"})
    registry.set_active("clause-comparison", True)

    first = registry.reset_to_defaults()
    second = registry.reset_to_defaults()

    assert first == second
    assert first == default_prompts()


def test_mutations_are_persisted():
    store = InMemoryPromptStore()
    registry = PromptRegistry(store)
    registry.add({"name": "kept", "content": "text", "category": "summary", "isActive": True})

    reloaded = PromptRegistry(store)

    assert [p.id for p in reloaded.list()] == [p.id for p in registry.list()]
    assert reloaded.get_active(PromptCategory.SUMMARY).name == "kept"


def test_loaded_state_with_two_actives_is_repaired():
    prompts = default_prompts()
    prompts[3].is_active = True  # second active analysis prompt
    store = InMemoryPromptStore()
    store.save(prompts)

    registry = PromptRegistry(store)

    assert active_ids(registry, PromptCategory.ANALYSIS) == ["contract-analysis"]


def test_verify_single_active_rejects_duplicates():
    prompts = [
        PromptDefinition(id="a", name="a", content="a", category="custom", is_active=True),
        PromptDefinition(id="b", name="b", content="b", category="custom", is_active=True),
    ]
    with pytest.raises(PromptRegistryError):
        verify_single_active(prompts)


def test_concurrent_set_active_keeps_one_active_per_category(registry):
    """Racing activations in one category never leave two active prompts."""
    for index in range(8):
        registry.add({"name": f"analysis {index}", "content": "text", "category": "analysis"})
    candidates = [p.id for p in registry.list() if p.category == PromptCategory.ANALYSIS]

    violations = []
    stop = threading.Event()

    def observe():
        while not stop.is_set():
            counts = Counter(p.category for p in registry.list() if p.is_active)
            if any(count > 1 for count in counts.values()):
                violations.append(counts)

    observer = threading.Thread(target=observe)
    observer.start()
    try:
        with ThreadPoolExecutor(max_workers=8) as pool:
            list(pool.map(lambda i: registry.set_active(candidates[i % len(candidates)], True), range(400)))
    finally:
        stop.set()
        observer.join()

    assert violations == []
    assert len(active_ids(registry, PromptCategory.ANALYSIS)) == 1
