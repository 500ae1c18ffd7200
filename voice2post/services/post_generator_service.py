"""Turn a transcript into a styled social post with Gemini."""

import json
import re
from dataclasses import dataclass

from .prompt_registry import POST_STYLES, build_post_prompt

DEFAULT_STYLE = 'Facebook'
SUMMARY_FALLBACK_TEXT = 'Unable to summarize the content.'
CODE_FENCE_RE = re.compile(r'```(?:json)?[ \t]*\n?|\n?```', re.IGNORECASE)


@dataclass(frozen=True)
class ParsedPost:
    summary: str
    post: str
    is_fallback = False


@dataclass(frozen=True)
class FallbackPost:
    raw_text: str
    is_fallback = True

    @property
    def summary(self):
        return SUMMARY_FALLBACK_TEXT

    @property
    def post(self):
        return self.raw_text


def is_valid_style(style):
    return style in POST_STYLES


def strip_code_fences(text):
    return CODE_FENCE_RE.sub('', text or '').strip()


def parse_generation(raw_text):
    """Decide once whether the model answered with the expected JSON shape."""
    raw_text = raw_text or ''
    try:
        data = json.loads(strip_code_fences(raw_text))
    except ValueError:
        return FallbackPost(raw_text)
    if not isinstance(data, dict):
        return FallbackPost(raw_text)
    summary = data.get('summary')
    post = data.get('post')
    if not isinstance(summary, str) or not isinstance(post, str):
        return FallbackPost(raw_text)
    return ParsedPost(summary=summary.strip(), post=post.strip())


def generate_post(transcript, style, *, client, types_module, model, output_language):
    prompt_text = build_post_prompt(transcript, style, output_language)
    response = client.models.generate_content(
        model=model,
        contents=[types_module.Content(role='user', parts=[types_module.Part.from_text(text=prompt_text)])],
    )
    return parse_generation(response.text or '')
