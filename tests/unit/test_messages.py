"""
Unit Tests: MessageService и форматтеры
"""

import json
from datetime import date

from pydantic import BaseModel

from flowbot.messages import MessageService, format_command_list, format_summary, format_title, format_value


class Item(BaseModel):
    productName: str
    quantity: int


def test_templates_are_loaded_by_category(messages):
    assert {"general", "flow", "errors"} <= set(messages.get_available_categories())
    assert "invalid_input" in messages.get_message_keys("flow")


def test_render_does_not_escape_user_input(messages):
    text = messages.get_message("invalid_input", "flow", reason="<b>& 'x'</b>", help_token="help", stop_token="stop")

    assert text.startswith("❌ <b>& 'x'</b>\n")


def test_missing_template_is_marked(messages):
    assert messages.get_message("nope", "general") == "[MISSING: general.nope]"


def test_fallback_to_other_category(messages):
    text = messages.get_message("stopped_all", "general")
    assert text.startswith("⏹ All commands cancelled.")


def test_custom_templates_dir(tmp_path):
    (tmp_path / "custom.json").write_text(
        json.dumps({"hello": {"template": "Hi {{ name }}!", "variables": ["name"]}}),
        encoding="utf-8"
    )
    service = MessageService(str(tmp_path))

    assert service.get_message("hello", "custom", name="Ann") == "Hi Ann!"

    (tmp_path / "custom.json").write_text(
        json.dumps({"hello": {"template": "Bye {{ name }}", "variables": ["name"]}}),
        encoding="utf-8"
    )
    service.reload_templates()
    assert service.get_message("hello", "custom", name="Ann") == "Bye Ann"


def test_format_value_scalars():
    assert format_value(None) == "—"
    assert format_value(True) == "Yes"
    assert format_value(False) == "No"
    assert format_value(date(2030, 1, 15)) == "2030-01-15"
    assert format_value(["Red", "Blue"]) == "Red, Blue"
    assert format_value([]) == "—"
    assert format_value(2.5) == "2.5"


def test_format_value_nested_results():
    text = format_value([{"productName": "Widget", "quantity": 3}, Item(productName="Gadget", quantity=1)])

    assert text == (
        "\n  1.\n    productName: Widget\n    quantity: 3"
        "\n  2.\n    productName: Gadget\n    quantity: 1"
    )


def test_format_summary():
    summary = format_summary({"customerInfo": {"name": "Jane"}, "status": "Pending"})

    assert summary == "customerInfo: \n  name: Jane\nstatus: Pending"


def test_format_command_list():
    class Cmd:
        def __init__(self, name, description):
            self.name = name
            self.description = description

    text = format_command_list([
        ("Orders", [Cmd("order_item", "Enter an order item")]),
        ("Demo", [Cmd("tags_demo", "Pick your interests")]),
    ])

    assert text == "Orders\n• /order_item - Enter an order item\n\nDemo\n• /tags_demo - Pick your interests"


def test_format_title():
    assert format_title("special_order") == "Special order"
    assert format_title("ping") == "Ping"
