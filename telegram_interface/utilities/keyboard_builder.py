"""
Keyboard Builder - reply keyboards for prompts
"""

from typing import Optional, Union

from aiogram.types import KeyboardButton, ReplyKeyboardMarkup, ReplyKeyboardRemove

from flowbot.prompts.models import Affordance

ReplyMarkup = Union[ReplyKeyboardMarkup, ReplyKeyboardRemove]


def build_reply_markup(affordance: Optional[Affordance]) -> Optional[ReplyMarkup]:
    """Translate an Affordance into aiogram reply markup (one button per row)"""
    if affordance is None:
        return None
    if affordance.buttons:
        return ReplyKeyboardMarkup(
            keyboard=[[KeyboardButton(text=label)] for label in affordance.buttons],
            resize_keyboard=True,
            one_time_keyboard=affordance.one_time
        )
    if affordance.remove:
        return ReplyKeyboardRemove()
    return None
