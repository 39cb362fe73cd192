"""
Message Splitter - разбиение длинных сообщений для Telegram

Telegram лимит: 4096 символов на сообщение.
Разбивает текст по параграфам чтобы не резать посередине предложения.
"""

from typing import List

MAX_MESSAGE_LENGTH = 4000  # Оставляем запас


def _hard_wrap(line: str, limit: int) -> List[str]:
    return [line[i:i + limit] for i in range(0, len(line), limit)]


def split_message(text: str, limit: int = MAX_MESSAGE_LENGTH) -> List[str]:
    """
    Split text into parts no longer than limit.

    Paragraphs (blank-line separated) are kept whole when they fit, then lines,
    and only a single oversized line is cut mid-text.
    """
    if len(text) <= limit:
        return [text]

    parts: List[str] = []
    current_part = ""

    def flush():
        nonlocal current_part
        if current_part.strip():
            parts.append(current_part.strip())
        current_part = ""

    for paragraph in text.split('\n\n'):
        if len(paragraph) <= limit:
            if len(current_part) + len(paragraph) + 2 <= limit:
                current_part += paragraph + '\n\n'
            else:
                flush()
                current_part = paragraph + '\n\n'
            continue

        # Параграф слишком длинный - режем по строкам
        for line in paragraph.split('\n'):
            if len(line) > limit:
                flush()
                chunks = _hard_wrap(line, limit)
                parts.extend(chunks[:-1])
                current_part = chunks[-1] + '\n'
            elif len(current_part) + len(line) + 1 <= limit:
                current_part += line + '\n'
            else:
                flush()
                current_part = line + '\n'
        flush()

    flush()
    return parts
