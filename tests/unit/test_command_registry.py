"""
Unit Tests: Command Registry, CommandSpec and PromptSpec invariants
"""

import pytest
from pydantic import BaseModel, Field

from flowbot.commands import CommandRegistry, CommandSpec, normalize_name
from flowbot.core.error_handling import CommandNotFound, DuplicateCommand
from flowbot.prompts.models import PromptKind, PromptSpec


class Pair(BaseModel):
    first: str
    second: str


# ============================================================================
# NAMES
# ============================================================================

@pytest.mark.parametrize("raw, expected", [
    ("order_item", "order_item"),
    ("/Order_Item", "order_item"),
    ("/order_item@flow_bot ", "order_item"),
    ("  HELP ", "help"),
])
def test_normalize_name(raw, expected):
    assert normalize_name(raw) == expected


# ============================================================================
# REGISTRATION
# ============================================================================

def test_register_and_lookup_is_case_insensitive():
    registry = CommandRegistry()
    spec = registry.register_command("Greet", "Say hello")

    assert spec.name == "greet"
    assert registry.lookup("/GREET") is spec
    assert "greet" in registry
    assert len(registry) == 1


def test_duplicate_name_is_rejected_and_first_kept():
    registry = CommandRegistry()
    first = registry.register_command("greet", "First")

    with pytest.raises(DuplicateCommand):
        registry.register_command("/Greet", "Second")

    assert registry.lookup("greet") is first


def test_lookup_unknown_raises():
    with pytest.raises(CommandNotFound):
        CommandRegistry().lookup("nope")


def test_list_visible_groups_by_category_and_hides_private():
    registry = CommandRegistry()
    registry.register_command("b_cmd", "B", category="Orders")
    registry.register_command("a_cmd", "A", category="General")
    registry.register_command("secret", "S", category="Admin", is_public=False)
    registry.register_command("c_cmd", "C", category="Orders")

    public = registry.list_visible(privileged=False)
    assert list(public.keys()) == ["Orders", "General"]
    assert [spec.name for spec in public["Orders"]] == ["b_cmd", "c_cmd"]

    everything = registry.list_visible(privileged=True)
    assert [spec.name for spec in everything["Admin"]] == ["secret"]


def test_missing_delegates_are_reported():
    registry = CommandRegistry()
    registry.register_command("parent", "P", prompts=[
        PromptSpec(key="child", text="Go?", kind=PromptKind.CONFIRM, delegate="/Child"),
    ])

    assert registry.missing_delegates() == {"parent": ["child"]}

    registry.register_command("child", "C")
    assert registry.missing_delegates() == {}


def test_demo_catalog_is_consistent(registry):
    assert registry.missing_delegates() == {}
    assert {"customer_info", "order_item", "special_order", "tags_demo", "admin_stats"} <= set(registry.names())
    assert not registry.lookup("admin_stats").is_public


# ============================================================================
# DECLARATION INVARIANTS
# ============================================================================

def test_command_rejects_duplicate_prompt_keys():
    with pytest.raises(ValueError, match="duplicate prompt keys"):
        CommandSpec("dup", "D", prompts=[PromptSpec(key="a", text="1"), PromptSpec(key="a", text="2")])


def test_command_rejects_blank_or_spaced_names():
    with pytest.raises(ValueError):
        CommandSpec("/", "Nothing")
    with pytest.raises(ValueError):
        CommandSpec("two words", "Bad")


def test_aggregate_schema_fields_must_have_prompts():
    with pytest.raises(ValueError, match="without prompts"):
        CommandSpec("pair", "P", prompts=[PromptSpec(key="first", text="1")], aggregate_schema=Pair)

    spec = CommandSpec(
        "pair", "P",
        prompts=[PromptSpec(key="first", text="1"), PromptSpec(key="second", text="2")],
        aggregate_schema=Pair
    )
    assert spec.aggregate_schema is Pair


def test_aggregate_schema_aliases_match_prompt_keys():
    class Aliased(BaseModel):
        product_name: str = Field(alias="productName")

    spec = CommandSpec("item", "I", prompts=[PromptSpec(key="productName", text="?")], aggregate_schema=Aliased)
    assert spec.name == "item"


def test_choice_prompts_require_choices():
    with pytest.raises(ValueError):
        PromptSpec(key="s", text="?", kind=PromptKind.SINGLE_CHOICE)
    with pytest.raises(ValueError):
        PromptSpec(key="t", text="?", choices=("A",))


def test_repeat_requires_delegate():
    with pytest.raises(ValueError):
        PromptSpec(key="n", text="?", kind=PromptKind.NUMBER, repeat=True)


def test_prompt_requires_key():
    with pytest.raises(ValueError):
        PromptSpec(key="", text="?")
