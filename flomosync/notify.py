"""
User notifications for flomosync.

Messages shown to the user are written in English and translated with `t`
for the configured locale.
"""

import logging
from typing import Dict, List, Optional, Tuple


ZH_CN = {
    "Inbox name": "收件箱名称",
    "The text used for the block where imported notes are placed under.":
        "收件箱描述文字，导入的笔记将放在该块下。",
    "Note tag": "笔记标签",
    "The tag applied to the imported notes.": "导入的笔记将使用该标签。",
    "Incremental sync": "增量同步",
    "Full sync": "全量同步",
    "Please log in to Flomo first.": "请先登录到Flomo。",
    "Failed to sync Flomo notes.": "Flomo笔记同步失败。",
    "Flomo notes synced successfully.": "Flomo笔记同步成功。",
    "Nothing to sync.": "没有需要同步的内容。",
    "Starting to sync, please wait...": "开始同步，请稍后……",
    "Sync Flomo notes": "同步Flomo笔记",
}

TRANSLATIONS: Dict[str, Dict[str, str]] = {
    "zh-CN": ZH_CN,
}

_locale = "en"


def setup_l10n(locale: Optional[str]) -> None:
    """Select the locale used by `t`."""
    global _locale
    _locale = locale or "en"


def t(text: str) -> str:
    """Translate a message, falling back to the English text."""
    return TRANSLATIONS.get(_locale, {}).get(text, text)


ICONS = {
    "info": "ℹ️ ",
    "warn": "⚠️ ",
    "error": "❌",
    "success": "✅",
}

LOG_LEVELS = {
    "info": logging.INFO,
    "warn": logging.WARNING,
    "error": logging.ERROR,
    "success": logging.INFO,
}


class Notifier:
    """
    Shows messages to the user on the console and records them.
    """

    def __init__(self, echo: bool = True):
        self.echo = echo
        self.messages: List[Tuple[str, str]] = []

    def notify(self, level: str, message: str) -> None:
        """
        Show a message.

        Args:
            level: One of 'info', 'warn', 'error' or 'success'
            message: Already translated message text
        """
        if level not in LOG_LEVELS:
            raise ValueError(f"Unknown notification level: {level}")
        self.messages.append((level, message))
        logging.log(LOG_LEVELS[level], f"[notify:{level}] {message}")
        if self.echo:
            print(f"{ICONS[level]} {message}")
