"""
Message Service

Centralized chat texts: JSON template files rendered with Jinja2
"""

import json
import logging
from pathlib import Path
from typing import Any, Dict, List, Optional

from jinja2 import Environment, TemplateSyntaxError

logger = logging.getLogger(__name__)

MAX_MESSAGE_LENGTH = 4096


class MessageService:
    """Централизованный сервис сообщений"""

    def __init__(self, templates_dir: Optional[str] = None):
        if templates_dir is None:
            # Шаблоны лежат рядом с модулем
            templates_dir = Path(__file__).parent / "templates"

        self.templates_dir = Path(templates_dir)

        # Plain text output, no HTML escaping
        self.jinja_env = Environment(
            autoescape=False,
            trim_blocks=True,
            lstrip_blocks=True
        )

        self._templates_cache: Dict[str, Dict[str, Any]] = {}
        self._load_all_templates()

        logger.info(f"MessageService initialized with templates from {self.templates_dir}")

    def _load_all_templates(self):
        """Загрузка всех шаблонов из файлов"""
        if not self.templates_dir.exists():
            logger.warning(f"Templates directory not found: {self.templates_dir}")
            return

        for json_file in sorted(self.templates_dir.glob("*.json")):
            try:
                with json_file.open('r', encoding='utf-8') as f:
                    self._templates_cache[json_file.stem] = json.load(f)
                logger.debug(f"Loaded templates for {json_file.stem}")
            except (json.JSONDecodeError, IOError) as e:
                logger.error(f"Failed to load {json_file}: {e}")

    def get_message(self, key: str, category: str = 'general', **kwargs) -> str:
        """Получить сообщение с подстановкой переменных"""
        template_data = self._get_template_data(key, category)
        if not template_data:
            logger.warning(f"Template not found: {category}.{key}")
            return f"[MISSING: {category}.{key}]"

        template_str = template_data.get('template', '')
        if not template_str:
            return f"[EMPTY_TEMPLATE: {category}.{key}]"

        try:
            rendered = self.jinja_env.from_string(template_str).render(**kwargs).strip()
        except TemplateSyntaxError as e:
            logger.error(f"Template syntax error in {category}.{key}: {e}")
            return f"[TEMPLATE_ERROR: {e}]"

        if len(rendered) > MAX_MESSAGE_LENGTH:
            logger.warning(f"Message longer than Telegram limit: {category}.{key} ({len(rendered)} chars)")

        return rendered

    def reload_templates(self):
        """Перезагрузка всех шаблонов"""
        self._templates_cache.clear()
        self._load_all_templates()
        logger.info("Templates reloaded")

    def get_available_categories(self) -> List[str]:
        return list(self._templates_cache.keys())

    def get_message_keys(self, category: str = 'general') -> List[str]:
        return list(self._templates_cache.get(category, {}).keys())

    def _get_template_data(self, key: str, category: str) -> Optional[Dict[str, Any]]:
        """Получить данные шаблона с fallback на другие категории"""
        template_data = self._templates_cache.get(category, {}).get(key)
        if template_data:
            return template_data

        for cat_name, cat_data in self._templates_cache.items():
            if key in cat_data:
                logger.debug(f"Found {key} in category {cat_name} instead of {category}")
                return cat_data[key]

        return None
