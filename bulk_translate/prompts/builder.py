# Prompt builder for bulk translation requests.

from __future__ import annotations

from typing import Dict, List, Sequence
import re


PARAGRAPH_OPEN = "<paragraph>"
PARAGRAPH_CLOSE = "</paragraph>"

DEFAULT_TEMPLATE = """\
You are an expert literary translator. Translate the text below into {{language}}.
Preserve the storytelling style, tone, and meaning of the original.
Keep proper names consistent and adapt idioms naturally to {{language}}.
Do not leave untranslated source-language words except proper names.

Please output the following JSON.
A string in `<paragraph>` tag to `</paragraph>` tag is one paragraph.
If a paragraph of input is translated and consists of multiple sentences, output an array consisting of multiple strings.
There are {{count}} paragraphs of input, please output {{count}} paragraphs.
Using this JSON schema:
Paragraph = {"line": number, "text": list[string]}
Return a `list[Paragraph]`.
Please remove `<paragraph>` and `</paragraph>` tags from the translation result.
Here is the text to translate:
{{source}}"""

_TEMPLATE_TOKEN_PATTERN = re.compile(r"\{\{([a-zA-Z_][a-zA-Z0-9_]*)\}\}")


def _render_template(template: str, mapping: Dict[str, str]) -> str:
    def _replace(match: re.Match[str]) -> str:
        key = match.group(1)
        return mapping.get(key, match.group(0))

    return _TEMPLATE_TOKEN_PATTERN.sub(_replace, template)


def wrap_paragraph(line: str) -> str:
    return f"{PARAGRAPH_OPEN}{line}{PARAGRAPH_CLOSE}"


def build_messages(
    lines: Sequence[str],
    target_language: str,
    *,
    template: str | None = None,
) -> List[Dict[str, str]]:
    """Build the system instruction and the paragraph-marked user content.

    ``template`` may use ``{{language}}``, ``{{count}}`` and ``{{source}}``;
    unknown tokens are left as-is.
    """
    template = str(template or DEFAULT_TEMPLATE).strip("\n")
    mapping = {
        "language": str(target_language or ""),
        "count": str(len(lines)),
        "source": "\n".join(str(line) for line in lines),
    }
    system_content = _render_template(template, mapping).strip("\n")
    user_content = "\n".join(wrap_paragraph(str(line)) for line in lines)
    return [
        {"role": "system", "content": system_content},
        {"role": "user", "content": user_content},
    ]
