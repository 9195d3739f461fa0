"""
lectern/summary/prompts.py
===========================
Summary prompt assembly.

The transcript comes from live speech recognition, so the prompt asks the
model to repair recognition errors from context before summarizing.
"""

from lectern.categories import Category
from lectern.translation.providers import language_name

ELLIPSIS = "..."

_SUMMARY_TEMPLATE: str = """\
Context:
You summarize spoken content that was transcribed live by a speech
recognizer. The source may be a lecture, a discussion or an event with a few
speakers and many listeners. The transcript often contains recognition errors
(for example "My Combinator" instead of "Y Combinator") that you must correct
from context.

Objective:
Produce an accurate and concise summary that fixes recognition errors, uses
the HTML layout below, and ends with five relevant tags.

Style: concise, clear and professional. Tone: neutral and informative.

{category_prompt}

Here is the transcript, which may contain recognition errors:
{transcript}

Instructions:
1. Fix transcription errors using context clues.
2. Organize the summary into 2-4 sections, each headed with <b>Section Title</b>.
3. Under each heading list 1-3 concise bullet points.
4. Use <br/> for line breaks between sections and bullet points.
5. Do not exceed 500 characters in total.
6. End with five tags in this format:
<b>Important tags</b><br/>
- tag 1<br/>
- tag 2<br/>
- tag 3<br/>
- tag 4<br/>
- tag 5<br/>
"""


def join_segments(texts: list[str]) -> str:
    """Join segment texts with a single space."""
    return " ".join(texts)


def truncate_transcript(transcript: str, max_chars: int) -> str:
    """Cut ``transcript`` to ``max_chars`` and mark the cut with an ellipsis."""
    if len(transcript) <= max_chars:
        return transcript
    return transcript[:max_chars] + ELLIPSIS


def build_summary_prompt(category: Category, transcript: str) -> str:
    return _SUMMARY_TEMPLATE.format(
        category_prompt=category.prompt,
        transcript=transcript,
    )


SUMMARY_TRANSLATION_TEMPERATURE = 0.1


def build_translation_prompt(summary: str, target_language: str, source_language: str = "en") -> str:
    """Prompt for translating a finished summary with the generation backend."""
    return (
        f"Translate the following {language_name(source_language)} summary to "
        f"{language_name(target_language)}. Maintain the professional tone and "
        f"technical accuracy:\n\n{summary}"
    )
