import io
import json
import wave

import pytest

from cognify.services import study_generation_service
from cognify.services.study_generation_service import StudyGenerationError


class _FakeModels:
    def __init__(self, responses):
        self._responses = list(responses)
        self.calls = []

    def generate_content(self, **kwargs):
        self.calls.append(kwargs)
        return self._responses.pop(0)


class _FakeClient:
    def __init__(self, *responses):
        self.models = _FakeModels(responses)


class _TextResponse:
    def __init__(self, text):
        self.text = text


class _InlineData:
    def __init__(self, data):
        self.data = data


class _Part:
    def __init__(self, data=None):
        self.inline_data = _InlineData(data) if data is not None else None


class _Content:
    def __init__(self, parts):
        self.parts = parts


class _Candidate:
    def __init__(self, parts):
        self.content = _Content(parts)


class _AudioResponse:
    def __init__(self, parts):
        self.candidates = [_Candidate(parts)]


def _question(question, answer=0, options=None):
    return {
        "question": question,
        "options": options or ["A", "B", "C", "D"],
        "correct_answer": answer,
        "explanation": "Because.",
    }


def test_extract_json_payload_handles_fences_and_trailing_text():
    fenced = '```json\n{"tldr": "Cells"}\n```'
    trailing = 'Here you go: {"tldr": "Cells"} hope it helps'

    assert study_generation_service.extract_json_payload(fenced) == {"tldr": "Cells"}
    assert study_generation_service.extract_json_payload(trailing) == {"tldr": "Cells"}
    assert study_generation_service.extract_json_payload("no json here") is None
    assert study_generation_service.extract_json_payload("") is None


def test_sanitize_summary_accepts_bullet_points_alias_and_caps_concepts():
    summary = study_generation_service.sanitize_summary({
        "tldr": "  Cells are the unit of life.  ",
        "key_concepts": [f"concept {i}" for i in range(12)] + [{"bad": True}],
        "definitions": [{"term": "Cell", "definition": "Unit of life"}, {"term": "", "definition": "orphan"}, "junk"],
        "bullet_points": ["first", "", "second"],
    })

    assert summary["tldr"] == "Cells are the unit of life."
    assert len(summary["key_concepts"]) == 7
    assert summary["definitions"] == [{"term": "Cell", "definition": "Unit of life"}]
    assert summary["bullet_summary"] == ["first", "second"]


def test_sanitize_quiz_questions_normalizes_answers_and_drops_invalid_items():
    items = [
        _question("What is ATP?", answer=2),
        _question("Digit string answer?", answer="1"),
        _question("Answer given as text?", answer="D"),
        _question("Out of range?", answer=7),
        _question("Duplicate options?", options=["A", "A", "B", "C"]),
        _question("Too few options?", options=["A", "B"]),
        _question("what is atp?", answer=1),
        "not a dict",
    ]

    questions = study_generation_service.sanitize_quiz_questions(items, max_items=5)

    assert [q["question"] for q in questions] == ["What is ATP?", "Digit string answer?", "Answer given as text?"]
    assert [q["correct_answer"] for q in questions] == [2, 1, 3]
    assert [q["id"] for q in questions] == ["q1", "q2", "q3"]
    assert all(len(q["options"]) == 4 for q in questions)


def test_sanitize_quiz_questions_respects_max_items():
    items = [_question(f"Question {i}?") for i in range(8)]

    assert len(study_generation_service.sanitize_quiz_questions(items, max_items=5)) == 5


def test_sanitize_flashcards_dedupes_and_requires_both_sides():
    cards = study_generation_service.sanitize_flashcards(
        [
            {"front": "Cell", "back": "Unit of life"},
            {"front": "cell", "back": "unit of life"},
            {"front": "Nucleus", "back": ""},
            {"front": "Ribosome", "back": "Makes proteins"},
        ],
        max_items=20,
    )

    assert cards == [
        {"front": "Cell", "back": "Unit of life"},
        {"front": "Ribosome", "back": "Makes proteins"},
    ]


def test_generate_summary_requests_json_and_sanitizes():
    client = _FakeClient(_TextResponse(json.dumps({
        "tldr": "Cells are small.",
        "key_concepts": ["cells"],
        "definitions": [],
        "bullet_summary": ["Cells exist."],
    })))

    summary = study_generation_service.generate_summary(client, "gemini-test", "Cell text")

    assert summary["tldr"] == "Cells are small."
    call = client.models.calls[0]
    assert call["model"] == "gemini-test"
    assert call["config"].response_mime_type == "application/json"


def test_generate_summary_rejects_empty_tldr():
    client = _FakeClient(_TextResponse('{"tldr": "", "key_concepts": []}'))

    with pytest.raises(StudyGenerationError):
        study_generation_service.generate_summary(client, "gemini-test", "Cell text")


def test_generate_json_requires_a_client_and_object_payload():
    with pytest.raises(StudyGenerationError):
        study_generation_service.generate_quiz(None, "gemini-test", "text", "tldr")

    client = _FakeClient(_TextResponse("[1, 2, 3]"))
    with pytest.raises(StudyGenerationError):
        study_generation_service.generate_flashcards(client, "gemini-test", "text", [], [])


def test_generate_quiz_caps_question_count():
    client = _FakeClient(_TextResponse(json.dumps({"questions": [_question(f"Q{i}?") for i in range(9)]})))

    questions = study_generation_service.generate_quiz(client, "gemini-test", "text", "tldr", question_count=5)

    assert len(questions) == 5
    assert "create 5 multiple choice questions" in client.models.calls[0]["config"].system_instruction


def test_build_audio_script_uses_fallbacks():
    assert study_generation_service.build_audio_script({"tldr": "Cells.", "key_concepts": ["ATP", "DNA"]}) == (
        "Here's your summary. Cells.. Key concepts include: ATP, DNA."
    )
    assert "various topics" in study_generation_service.build_audio_script({})
    assert "No summary available" in study_generation_service.build_audio_script(None)


def test_generate_audio_wraps_pcm_in_wav():
    pcm = b"\x00\x01" * 2400
    client = _FakeClient(_AudioResponse([_Part(), _Part(pcm)]))

    audio = study_generation_service.generate_audio(client, "tts-test", "Kore", "Hello")

    with wave.open(io.BytesIO(audio), "rb") as wav_file:
        assert wav_file.getframerate() == 24000
        assert wav_file.getnchannels() == 1
        assert wav_file.getsampwidth() == 2
        assert wav_file.readframes(wav_file.getnframes()) == pcm
    assert client.models.calls[0]["config"].response_modalities == ["AUDIO"]


def test_generate_audio_without_audio_part_raises():
    client = _FakeClient(_AudioResponse([_Part()]))

    with pytest.raises(StudyGenerationError):
        study_generation_service.generate_audio(client, "tts-test", "Kore", "Hello")
