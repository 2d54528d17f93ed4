"""
Tests for context assembly and prompt construction.
"""

from datetime import datetime

import pytest

from worklog_assistant.entities import RetrievedDocument
from worklog_assistant.services import ContextAssembler, PromptBuilder, prepare_text_for_embedding
from worklog_assistant.services.prompting import BLOCK_SEPARATOR, format_date


def doc(**overrides):
    fields = {
        "title": "Migrate billing",
        "content": "Moved invoice tables.",
        "tags": ("database", "billing"),
        "created_at": datetime(2025, 10, 15, 9, 30),
        "author_name": "Sarah",
        "author_division": "Platform",
        "score": 0.953,
    }
    fields.update(overrides)
    return RetrievedDocument(**fields)


def test_build_context_of_nothing_is_none():
    assert ContextAssembler().build_context([]) is None


def test_build_context_numbers_every_document():
    docs = [doc(title=f"Log {i}") for i in range(4)]
    context = ContextAssembler().build_context(docs)

    assert context is not None
    assert context.count("Log #") == 4
    assert context.count(BLOCK_SEPARATOR) == 3
    assert context.startswith("Log #1 [95%]\n")


def test_render_document_layout():
    block = ContextAssembler().render_document(2, doc())
    assert block == (
        "Log #2 [95%]\n"
        "Title: Migrate billing\n"
        "Author: Sarah (Platform) | Date: Oct 15, 2025\n"
        "Tags: database, billing\n"
        "Content: Moved invoice tables."
    )


def test_render_document_without_score_or_metadata():
    block = ContextAssembler().render_document(
        1,
        doc(
            score=None,
            author_name=None,
            author_division=None,
            created_at=None,
            tags=(),
            content="",
        ),
    )
    assert block.startswith("Log #1\n")
    assert "[" not in block.splitlines()[0]
    assert "Author: Unknown | Date: Unknown date" in block
    assert "Tags: None" in block
    assert "Content: No content" in block


def test_render_document_marks_truncation():
    block = ContextAssembler().render_document(1, doc(content="abc", truncated=True))
    assert block.endswith("Content: abc...")


def test_format_date():
    assert format_date(datetime(2025, 3, 5)) == "Mar 5, 2025"
    assert format_date(None) == "Unknown date"


def test_system_prompt_wraps_context_with_rules():
    prompt = PromptBuilder().build_system_prompt("Log #1\nTitle: X")

    assert prompt.startswith("You are a work log assistant.")
    assert "Log #1\nTitle: X" in prompt
    assert "not found in available logs" in prompt
    assert prompt.endswith("Answer the user's question using these logs.")


def test_system_prompt_is_deterministic():
    builder = PromptBuilder()
    assert builder.build_system_prompt("ctx") == builder.build_system_prompt("ctx")


def test_system_prompt_keeps_braces_in_context():
    prompt = PromptBuilder().build_system_prompt('config was {"retries": 3}')
    assert 'config was {"retries": 3}' in prompt


def test_prompt_template_requires_placeholder():
    with pytest.raises(ValueError):
        PromptBuilder(template="no placeholder")


def test_prepare_text_for_embedding():
    assert prepare_text_for_embedding("Deploy", "Rolled out v2", ["ops", "release"]) == (
        "Title: Deploy\nContent: Rolled out v2\nTags: ops, release"
    )
    assert prepare_text_for_embedding("Deploy", None, []) == "Title: Deploy"
