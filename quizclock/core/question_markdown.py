"""Markdown rendering for the question text students see.

Math stays as ``$...$`` / ``$$...$$`` source in the HTML; the client is
expected to typeset it (for example with MathJax).
"""

from __future__ import annotations

from dataclasses import dataclass, field

from markdown_it import MarkdownIt

from quizclock.core.models import MultipleChoiceQuestion, Question

EMPTY_QUESTION_HTML = "<p><em>No question text.</em></p>"


@dataclass(slots=True)
class QuestionMarkdownRenderer:
    """Turns question and option markdown into HTML."""

    allow_html: bool = False
    _markdown: MarkdownIt = field(init=False, repr=False)

    def __post_init__(self) -> None:
        self._markdown = MarkdownIt(
            "commonmark", {"html": self.allow_html, "breaks": True}
        ).enable(["table", "strikethrough"])

    def render_text(self, markdown_text: str) -> str:
        source = markdown_text.strip()
        if not source:
            return EMPTY_QUESTION_HTML
        return self._markdown.render(source)

    def render_option(self, option_text: str) -> str:
        """Options sit inside a list item or button, so no wrapping paragraph."""
        return self._markdown.renderInline(option_text.strip())

    def render_question(self, question: Question) -> dict[str, object]:
        rendered: dict[str, object] = {"question_html": self.render_text(question.text)}
        if isinstance(question, MultipleChoiceQuestion):
            rendered["options_html"] = [self.render_option(o) for o in question.options]
        return rendered


question_renderer = QuestionMarkdownRenderer()
