"""提示词加载工具。

按语言(locale) 从 prompts/<locale> 目录读取提示词模板。
总结模板使用 str.format 占位符：{results}、{cuisine}、{location}。
"""

from pathlib import Path


PROMPTS_DIR = Path(__file__).resolve().parent


def load_prompt(name: str, locale: str = "en") -> str:
    """读取单个提示词模板，去掉首尾空白。"""

    fname = PROMPTS_DIR / locale / f"{name}.md"
    return fname.read_text(encoding="utf-8").strip()


def load_system_prompt(locale: str = "en") -> str:
    return load_prompt("system", locale)
