"""Prompt templates for Voice2Post."""

from __future__ import annotations

from typing import Dict

POST_STYLES = ("Facebook", "IG", "Twitter")


PROMPT_AUDIO_TRANSCRIPTION = """Transcribe this audio file to text.
Respond only with the transcription, without any additional commentary.
Keep the spoken language: if the audio is in Thai, transcribe in Thai; if it is in English, transcribe in English."""

PROMPT_STYLE_FACEBOOK = """Write an engaging Facebook post that invites interaction.
Use a friendly, conversational tone, add fitting emoji and break lines so the post is easy to read."""

PROMPT_STYLE_IG = """Write a short, punchy Instagram caption.
Use emoji and relevant hashtags, suitable for posting alongside an image."""

PROMPT_STYLE_TWITTER = """Write a concise tweet of at most 280 characters.
Make one clear point and use relevant hashtags."""

PROMPT_POST_GENERATION = """Summarize the main content of the transcribed text below, then turn it into a {style} post.

{style_instructions}

Write the summary and the post fully in this language: {output_language}.

Transcribed text: "{transcript}"

Respond with JSON in exactly this format:
{{
  "summary": "the key points of the content",
  "post": "the finished post, ready to publish"
}}"""

STYLE_INSTRUCTIONS: Dict[str, str] = {
    "Facebook": PROMPT_STYLE_FACEBOOK,
    "IG": PROMPT_STYLE_IG,
    "Twitter": PROMPT_STYLE_TWITTER,
}


def build_post_prompt(transcript: str, style: str, output_language: str) -> str:
    if style not in STYLE_INSTRUCTIONS:
        raise KeyError(f"Unknown post style: {style}")
    return PROMPT_POST_GENERATION.format(
        style=style,
        style_instructions=STYLE_INSTRUCTIONS[style],
        output_language=output_language,
        transcript=transcript,
    )

