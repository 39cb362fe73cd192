"""
Order commands - демонстрационный каталог команд.

customer_info  - name + email
order_item     - product + quantity
special_order  - customer_info sub-command, N x order_item, status, date, notes
tags_demo      - multi choice example
admin_stats    - private, error statistics
"""

import logging
from datetime import date
from typing import Annotated, Any, Dict, List, Literal, Optional

from pydantic import BaseModel, EmailStr, Field, PositiveInt, StringConstraints

from .models import InvocationMeta
from .registry import CommandRegistry
from ..core.error_handling import error_tracker
from ..prompts.models import PromptKind, PromptSpec
from ..prompts.results import Invalid, Valid

logger = logging.getLogger(__name__)

ORDER_STATUSES = ("Pending", "Processing", "Completed")

NonEmptyText = Annotated[str, StringConstraints(strip_whitespace=True, min_length=1)]
PersonName = Annotated[str, StringConstraints(strip_whitespace=True, min_length=2)]


class CustomerInfo(BaseModel):
    name: PersonName
    email: EmailStr


class OrderItem(BaseModel):
    productName: NonEmptyText
    quantity: PositiveInt


class SpecialOrder(BaseModel):
    customerInfo: CustomerInfo
    items: List[OrderItem] = Field(min_length=1)
    status: Literal["Pending", "Processing", "Completed"]
    fulfillmentDate: date
    notes: Optional[str]


def parse_notes(raw: str) -> Optional[str]:
    text = raw.strip()
    return None if text.lower() == "none" else text


def require_yes(value: bool, answers: Dict[str, Any]):
    if not value:
        return Invalid("Send 'yes' when you are ready, or 'stop' to cancel the order.")
    return Valid(value)


async def log_special_order(answers: Dict[str, Any], meta: InvocationMeta) -> None:
    logger.info(
        f"📦 Special order created in chat {meta.chat_id}: "
        f"{len(answers['items'])} item(s), status={answers['status']}",
        extra={'chat_id': meta.chat_id, 'user_id': meta.user_id, 'context': answers}
    )


def report_error_stats(answers: Dict[str, Any], meta: InvocationMeta) -> str:
    stats = error_tracker.get_error_stats()
    lines = [f"📊 Errors tracked: {stats['total_errors']} (last hour: {stats['recent_errors']})"]
    for code, count in sorted(stats['error_counts_by_code'].items()):
        lines.append(f"• {code}: {count}")
    return "\n".join(lines)


def register_order_commands(registry: CommandRegistry) -> None:
    """customer_info, order_item, special_order"""
    registry.register_command(
        name="customer_info",
        description="Enter customer information",
        category="Orders",
        aggregate_schema=CustomerInfo,
        prompts=[
            PromptSpec(
                key="name",
                text="What is the customer's name?",
                help="Enter the customer's full name (at least 2 characters).",
                schema=PersonName,
            ),
            PromptSpec(
                key="email",
                text="What is the customer's email?",
                help="Enter a valid email address, e.g. jane@example.com.",
                schema=EmailStr,
            ),
        ],
    )

    registry.register_command(
        name="order_item",
        description="Enter an order item",
        category="Orders",
        aggregate_schema=OrderItem,
        prompts=[
            PromptSpec(
                key="productName",
                text="What is the product name?",
                help="Enter the name of the product (non-empty).",
                schema=NonEmptyText,
            ),
            PromptSpec(
                key="quantity",
                text="How many units?",
                help="Enter a positive whole number.",
                kind=PromptKind.NUMBER,
                schema=PositiveInt,
            ),
        ],
    )

    registry.register_command(
        name="special_order",
        description="Create a new special order",
        category="Orders",
        aggregate_schema=SpecialOrder,
        action=log_special_order,
        prompts=[
            PromptSpec(
                key="customerInfo",
                text="Let's start with customer information. Ready?",
                help="Answer 'yes' to enter the customer's name and email.",
                kind=PromptKind.CONFIRM,
                validator=require_yes,
                delegate="customer_info",
            ),
            PromptSpec(
                key="items",
                text="Now, let's add items to the order. How many items?",
                help="Enter the number of items you want to add to the order.",
                kind=PromptKind.NUMBER,
                schema=PositiveInt,
                delegate="order_item",
                repeat=True,
            ),
            PromptSpec(
                key="status",
                text="What is the order status?",
                help="Choose one of the following: Pending, Processing, or Completed.",
                kind=PromptKind.SINGLE_CHOICE,
                choices=ORDER_STATUSES,
            ),
            PromptSpec(
                key="fulfillmentDate",
                text="What is the fulfillment date? (YYYY-MM-DD)",
                help="Enter the date in YYYY-MM-DD format. For example: 2023-05-15",
                schema=date,
            ),
            PromptSpec(
                key="notes",
                text="Any additional notes? (Type 'none' if no notes)",
                help="You can enter any additional information about the order here. "
                     "If there are no notes, just type 'none'.",
                parser=parse_notes,
            ),
        ],
    )


def register_demo_commands(registry: CommandRegistry) -> None:
    """Full demo catalog"""
    register_order_commands(registry)

    registry.register_command(
        name="tags_demo",
        description="Pick your interests",
        category="Demo",
        prompts=[
            PromptSpec(
                key="interests",
                text="Which topics interest you?",
                kind=PromptKind.MULTI_CHOICE,
                choices=("Books", "Music", "Sports", "Travel"),
            ),
            PromptSpec(
                key="newsletter",
                text="Subscribe to the newsletter?",
                kind=PromptKind.CONFIRM,
            ),
        ],
    )

    registry.register_command(
        name="admin_stats",
        description="Show error statistics",
        category="Admin",
        is_public=False,
        action=report_error_stats,
    )
