import pytest

from bulk_translate.prompts.builder import build_messages, wrap_paragraph


@pytest.mark.unit
def test_build_messages_default_template():
    messages = build_messages(["Hello", "World"], "Vietnamese")
    system, user = messages
    assert system["role"] == "system"
    assert "into Vietnamese" in system["content"]
    assert "There are 2 paragraphs of input, please output 2 paragraphs." in system["content"]
    assert 'Paragraph = {"line": number, "text": list[string]}' in system["content"]
    assert system["content"].endswith("Hello\nWorld")
    assert user == {
        "role": "user",
        "content": "<paragraph>Hello</paragraph>\n<paragraph>World</paragraph>",
    }


@pytest.mark.unit
def test_build_messages_custom_template_keeps_unknown_tokens():
    messages = build_messages(["a"], "German", template="To {{language}} x{{count}} {{glossary}}")
    assert messages[0]["content"] == "To German x1 {{glossary}}"


@pytest.mark.unit
def test_wrap_paragraph():
    assert wrap_paragraph("") == "<paragraph></paragraph>"
