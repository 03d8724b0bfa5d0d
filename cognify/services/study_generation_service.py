"""Gemini-backed generation of summaries, quizzes, flashcards and narration."""

import io
import json
import wave

from google.genai import types

from . import prompt_registry

MAX_SOURCE_TEXT_CHARS = 120000
MAX_TEXT_LEN = 2000
QUIZ_OPTION_COUNT = 4
DEFAULT_QUIZ_QUESTIONS = 5
MIN_FLASHCARDS = 8
MAX_FLASHCARDS = 20
MAX_KEY_CONCEPTS = 7
TTS_SAMPLE_RATE = 24000
TTS_SAMPLE_WIDTH = 2
TTS_CHANNELS = 1


class StudyGenerationError(Exception):
    pass


def extract_json_payload(raw_text):
    if not raw_text:
        return None
    text = raw_text.strip()
    if text.startswith('```'):
        lines = text.splitlines()
        if len(lines) >= 3 and lines[0].startswith('```') and lines[-1].strip() == '```':
            text = '\n'.join(lines[1:-1]).strip()
    start = text.find('{')
    if start == -1:
        return None
    decoder = json.JSONDecoder()
    try:
        parsed, _ = decoder.raw_decode(text[start:])
        return parsed
    except json.JSONDecodeError:
        end = text.rfind('}')
        if end == -1 or end <= start:
            return None
        try:
            return json.loads(text[start:end + 1])
        except json.JSONDecodeError:
            return None


def _clean_str(value):
    return str(value or '').strip()[:MAX_TEXT_LEN]


def _clean_str_list(items, max_items):
    if not isinstance(items, list):
        return []
    cleaned = []
    for item in items:
        if not isinstance(item, (str, int, float)):
            continue
        text = _clean_str(item)
        if text:
            cleaned.append(text)
        if len(cleaned) >= max_items:
            break
    return cleaned


def sanitize_definitions(items, max_items=30):
    if not isinstance(items, list):
        return []
    cleaned = []
    for item in items:
        if not isinstance(item, dict):
            continue
        term = _clean_str(item.get('term'))
        definition = _clean_str(item.get('definition'))
        if term and definition:
            cleaned.append({'term': term, 'definition': definition})
        if len(cleaned) >= max_items:
            break
    return cleaned


def sanitize_summary(parsed):
    bullets = parsed.get('bullet_summary')
    if not isinstance(bullets, list):
        bullets = parsed.get('bullet_points', [])
    return {
        'tldr': _clean_str(parsed.get('tldr')),
        'key_concepts': _clean_str_list(parsed.get('key_concepts', []), MAX_KEY_CONCEPTS),
        'definitions': sanitize_definitions(parsed.get('definitions', [])),
        'bullet_summary': _clean_str_list(bullets, 10),
    }


def _resolve_correct_index(item, options):
    raw = item.get('correct_answer')
    if isinstance(raw, bool):
        return None
    if isinstance(raw, int):
        return raw if 0 <= raw < len(options) else None
    if isinstance(raw, str) and raw.strip().isdigit():
        index = int(raw.strip())
        return index if 0 <= index < len(options) else None
    # Models sometimes answer with the option text instead of its index.
    answer = _clean_str(item.get('answer') if raw is None else raw)
    if answer in options:
        return options.index(answer)
    return None


def sanitize_quiz_questions(items, max_items):
    if not isinstance(items, list):
        return []
    cleaned = []
    seen = set()
    for item in items:
        if not isinstance(item, dict):
            continue
        question = _clean_str(item.get('question'))
        options = item.get('options', [])
        if not question or not isinstance(options, list) or len(options) != QUIZ_OPTION_COUNT:
            continue
        option_strings = [_clean_str(option) for option in options]
        if any(not option for option in option_strings):
            continue
        if len(set(option_strings)) != QUIZ_OPTION_COUNT:
            continue
        correct_index = _resolve_correct_index(item, option_strings)
        if correct_index is None:
            continue
        dedupe_key = question.lower()
        if dedupe_key in seen:
            continue
        seen.add(dedupe_key)
        cleaned.append({
            'id': f"q{len(cleaned) + 1}",
            'question': question,
            'options': option_strings,
            'correct_answer': correct_index,
            'explanation': _clean_str(item.get('explanation')),
        })
        if len(cleaned) >= max_items:
            break
    return cleaned


def sanitize_flashcards(items, max_items):
    if not isinstance(items, list):
        return []
    cleaned = []
    seen = set()
    for item in items:
        if not isinstance(item, dict):
            continue
        front = _clean_str(item.get('front'))
        back = _clean_str(item.get('back'))
        if not front or not back:
            continue
        key = (front.lower(), back.lower())
        if key in seen:
            continue
        seen.add(key)
        cleaned.append({'front': front, 'back': back})
        if len(cleaned) >= max_items:
            break
    return cleaned


def generate_json(client, model, system_prompt, user_text, *, max_output_tokens):
    if client is None:
        raise StudyGenerationError('AI generation is not configured')
    response = client.models.generate_content(
        model=model,
        contents=[types.Content(role='user', parts=[types.Part.from_text(text=user_text)])],
        config=types.GenerateContentConfig(
            system_instruction=system_prompt,
            response_mime_type='application/json',
            max_output_tokens=max_output_tokens,
        ),
    )
    parsed = extract_json_payload(getattr(response, 'text', '') or '')
    if not isinstance(parsed, dict):
        raise StudyGenerationError('Model response was not a JSON object')
    return parsed


def generate_summary(client, model, text):
    parsed = generate_json(
        client,
        model,
        prompt_registry.PROMPT_SUMMARY,
        (text or '')[:MAX_SOURCE_TEXT_CHARS],
        max_output_tokens=4096,
    )
    summary = sanitize_summary(parsed)
    if not summary['tldr']:
        raise StudyGenerationError('Summary was empty after validation')
    return summary


def generate_quiz(client, model, text, tldr, question_count=DEFAULT_QUIZ_QUESTIONS):
    user_text = prompt_registry.QUIZ_USER_TEMPLATE.format(
        source_text=(text or '')[:MAX_SOURCE_TEXT_CHARS],
        tldr=tldr or '',
    )
    parsed = generate_json(
        client,
        model,
        prompt_registry.PROMPT_QUIZ.format(question_count=question_count),
        user_text,
        max_output_tokens=4096,
    )
    return sanitize_quiz_questions(parsed.get('questions', []), question_count)


def generate_flashcards(client, model, text, definitions, key_concepts):
    definition_lines = '\n'.join(f"- {item['term']}: {item['definition']}" for item in definitions or []) or '- none'
    concept_lines = '\n'.join(f"- {concept}" for concept in key_concepts or []) or '- none'
    user_text = prompt_registry.FLASHCARDS_USER_TEMPLATE.format(
        definitions=definition_lines,
        key_concepts=concept_lines,
        source_text=(text or '')[:MAX_SOURCE_TEXT_CHARS],
    )
    parsed = generate_json(
        client,
        model,
        prompt_registry.PROMPT_FLASHCARDS.format(min_cards=MIN_FLASHCARDS, max_cards=MAX_FLASHCARDS),
        user_text,
        max_output_tokens=4096,
    )
    return sanitize_flashcards(parsed.get('flashcards', []), MAX_FLASHCARDS)


def build_audio_script(summary):
    summary = summary or {}
    key_concepts = summary.get('key_concepts') or []
    return prompt_registry.AUDIO_SCRIPT_TEMPLATE.format(
        tldr=summary.get('tldr') or 'No summary available',
        key_concepts=', '.join(key_concepts) if key_concepts else 'various topics',
    )


def pcm_to_wav(pcm_bytes, sample_rate=TTS_SAMPLE_RATE, sample_width=TTS_SAMPLE_WIDTH, channels=TTS_CHANNELS):
    buffer = io.BytesIO()
    with wave.open(buffer, 'wb') as wav_file:
        wav_file.setnchannels(channels)
        wav_file.setsampwidth(sample_width)
        wav_file.setframerate(sample_rate)
        wav_file.writeframes(pcm_bytes)
    return buffer.getvalue()


def _first_inline_audio(response):
    for candidate in getattr(response, 'candidates', None) or []:
        content = getattr(candidate, 'content', None)
        for part in getattr(content, 'parts', None) or []:
            inline_data = getattr(part, 'inline_data', None)
            if inline_data is not None and getattr(inline_data, 'data', None):
                return inline_data.data
    return None


def generate_audio(client, model, voice_name, text):
    """Synthesize narration and return WAV bytes."""
    if client is None:
        raise StudyGenerationError('AI generation is not configured')
    response = client.models.generate_content(
        model=model,
        contents=text,
        config=types.GenerateContentConfig(
            response_modalities=['AUDIO'],
            speech_config=types.SpeechConfig(
                voice_config=types.VoiceConfig(
                    prebuilt_voice_config=types.PrebuiltVoiceConfig(voice_name=voice_name),
                ),
            ),
        ),
    )
    pcm_bytes = _first_inline_audio(response)
    if not pcm_bytes:
        raise StudyGenerationError('Speech synthesis returned no audio')
    return pcm_to_wav(pcm_bytes)
