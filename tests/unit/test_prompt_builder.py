"""
Unit tests for core/prompt_builder.py

- Rating line, entry quoting and truncation
- Recent-hint selection (first three, each bounded)
- JSON output contract
- Persona content
"""

import pytest
from core.prompt_builder import PromptBuilder, FEEDBACK_SYSTEM_PROMPT, JSON_CONTRACT


@pytest.fixture
def builder():
    return PromptBuilder(entry_char_limit=1200, max_hints=3, hint_char_limit=150)


def test_rating_line_first(builder):
    prompt = builder.build(7, None, [])
    assert prompt.splitlines()[0] == "User's emotion rating: 7/10"


def test_no_entry_section_without_text(builder):
    prompt = builder.build(5, "   ", [])
    assert "journal entry" not in prompt.lower().split("respond")[0]
    assert '"' not in prompt.split(JSON_CONTRACT)[0]


def test_entry_is_quoted_and_labelled(builder):
    prompt = builder.build(4, "Rainy walk with my dog", [])
    assert "User's journal entry:" in prompt
    assert '"Rainy walk with my dog"' in prompt


def test_entry_truncated_to_limit(builder):
    text = "a" * 5000
    prompt = builder.build(6, text, [])
    assert '"' + "a" * 1200 + '"' in prompt
    assert "a" * 1201 not in prompt


def test_hints_capped_at_three_and_truncated(builder):
    hints = [f"hint{i} " + "x" * 300 for i in range(5)]
    prompt = builder.build(6, "entry", hints)

    hint_lines = [line for line in prompt.splitlines() if line.startswith("- hint")]
    assert len(hint_lines) == 3
    for i, line in enumerate(hint_lines):
        assert line.startswith(f"- hint{i}")
        assert len(line[2:]) <= 150
    assert "hint3" not in prompt
    assert "hint4" not in prompt


def test_hints_header_asks_for_variation(builder):
    prompt = builder.build(6, None, ["You did great today."])
    assert "vary your wording" in prompt
    assert "do not repeat" in prompt


def test_no_hints_section_when_empty(builder):
    prompt = builder.build(6, None, [])
    assert "recent responses" not in prompt


def test_blank_hints_skipped(builder):
    assert builder.select_hints(["", "  ", "real"]) == ["real"]


def test_prompt_ends_with_json_contract(builder):
    prompt = builder.build(9, "Got the job!", ["Nice work."])
    assert prompt.endswith(JSON_CONTRACT)
    for field in ('"text"', '"emotionHint"', '"tags"'):
        assert field in JSON_CONTRACT


def test_build_is_deterministic(builder):
    args = (3, "Rough day at work", ["a", "b"])
    assert builder.build(*args) == builder.build(*args)


def test_system_prompt_covers_persona_rules(builder):
    sp = builder.system_prompt
    assert sp == FEEDBACK_SYSTEM_PROMPT
    assert "3-5 sentences" in sp
    assert "75 words" in sp
    assert "8-10" in sp and "4-7" in sp and "1-3" in sp
    assert "one small, actionable suggestion" in sp
    assert "medical advice" in sp
    assert "verbatim" in sp
