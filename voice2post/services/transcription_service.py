"""Gemini transcription with an optional demo-transcript fallback."""

from dataclasses import dataclass

from .prompt_registry import PROMPT_AUDIO_TRANSCRIPTION

TRANSCRIPTION_TEMPERATURE = 0.1
TRANSCRIPTION_MAX_OUTPUT_TOKENS = 1000
SOURCE_GEMINI = 'gemini'
SOURCE_DEMO_FALLBACK = 'demo_fallback'
DEMO_PREFIX = '[Demo]'

DEMO_TRANSCRIPTS = (
    "สวัสดีครับ นี่คือการทดสอบระบบแปลงเสียงเป็นข้อความ",
    "Hello, this is a test of the voice-to-text system",
    "ขอบคุณที่ใช้บริการของเรา ระบบกำลังในช่วงทดสอบ",
    "Thank you for using our service. The system is currently in testing phase",
)


@dataclass(frozen=True)
class TranscriptResult:
    success: bool
    transcript: str = ''
    error: str = ''
    source: str = SOURCE_GEMINI

    @property
    def is_fallback(self):
        return self.source == SOURCE_DEMO_FALLBACK


def transcribe_audio(payload, *, client, types_module, model):
    try:
        response = client.models.generate_content(
            model=model,
            contents=[types_module.Content(role='user', parts=[
                types_module.Part.from_text(text=PROMPT_AUDIO_TRANSCRIPTION),
                types_module.Part.from_bytes(data=payload.data, mime_type=payload.mime_type),
            ])],
            config=types_module.GenerateContentConfig(
                temperature=TRANSCRIPTION_TEMPERATURE,
                max_output_tokens=TRANSCRIPTION_MAX_OUTPUT_TOKENS,
            ),
        )
        transcript = (response.text or '').strip()
    except Exception as exc:
        return TranscriptResult(False, error=f'Gemini transcription failed: {exc}')
    if not transcript:
        return TranscriptResult(False, error='No transcription generated from audio')
    return TranscriptResult(True, transcript=transcript)


def build_demo_transcript(payload, rng):
    sentence = rng.choice(DEMO_TRANSCRIPTS)
    return f"{DEMO_PREFIX} {sentence} (file: {payload.filename or 'audio'}, size: {payload.size} bytes)"


def transcribe_with_fallback(payload, *, client, types_module, model, demo_fallback_enabled, rng, logger):
    """Try Gemini first, then the canned demo transcript when the fallback is enabled.

    Returns the first successful result; otherwise a failed result carrying the
    last error.
    """
    strategies = [
        (SOURCE_GEMINI, lambda: transcribe_audio(payload, client=client, types_module=types_module, model=model)),
    ]
    if demo_fallback_enabled:
        strategies.append((
            SOURCE_DEMO_FALLBACK,
            lambda: TranscriptResult(True, transcript=build_demo_transcript(payload, rng), source=SOURCE_DEMO_FALLBACK),
        ))

    last_error = ''
    for name, strategy in strategies:
        result = strategy()
        if result.success:
            if result.is_fallback:
                logger.warning("Transcription fell back to demo text after: %s", last_error)
            return result
        last_error = result.error
        logger.warning("Transcription via %s failed: %s", name, last_error)
    return TranscriptResult(False, error=last_error)
