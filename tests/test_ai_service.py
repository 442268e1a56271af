import asyncio
from types import SimpleNamespace

from google.api_core import exceptions as google_exceptions

from providers.gemini_provider import GeminiProvider
from services.ai_service import (
    APOLOGY_MESSAGE,
    COACH_INSTRUCTION,
    DISABLED_MESSAGE,
    EMPTY_MESSAGE,
    AIService,
    build_insight_prompt,
)
from services.cache_service import ResponseCache
from services.commitment_service import CommitmentService
from services.key_manager import KeyManager
from services.pomodoro_service import PomodoroService
from services.project_service import ProjectService
from services.task_service import TaskService

from conftest import NOW, USER_ID


class FakeProvider:
    """Scripted stand-in for GeminiProvider; responses are keyed by API key."""

    calls: list = []
    responses: dict = {}

    def __init__(self, api_key: str):
        self.api_key = api_key

    @property
    def name(self) -> str:
        return "fake"

    async def generate(self, prompt, system_instruction=None, model=None) -> dict:
        FakeProvider.calls.append((self.api_key, prompt, system_instruction, model))
        return FakeProvider.responses[self.api_key]


def _ok(text):
    return {"text": text, "provider": "fake", "model": "m", "status": "success", "error": None, "exhausted": False}


def _failed(error="boom", exhausted=False):
    return {"text": None, "provider": "fake", "model": "m", "status": "failed", "error": error, "exhausted": exhausted}


def _service(keys, responses, cache=None):
    FakeProvider.calls = []
    FakeProvider.responses = responses
    return AIService(KeyManager(keys), provider_factory=FakeProvider, cache=cache, model="test-model")


def test_disabled_without_keys() -> None:
    service = _service([], {})
    assert asyncio.run(service.generate("hello")) == DISABLED_MESSAGE
    assert FakeProvider.calls == []


def test_success_is_cached() -> None:
    service = _service(["k1"], {"k1": _ok("  Keep going!  ")})

    assert asyncio.run(service.generate("hello", "be nice")) == "Keep going!"
    assert asyncio.run(service.generate("hello", "be nice")) == "Keep going!"
    assert FakeProvider.calls == [("k1", "hello", "be nice", "test-model")]
    assert service.cache.get_stats()["hits"] == 1


def test_exhausted_key_is_skipped_and_marked() -> None:
    service = _service(["k1", "k2"], {"k1": _failed("quota", exhausted=True), "k2": _ok("Done")})

    assert asyncio.run(service.generate("hello")) == "Done"
    assert [c[0] for c in FakeProvider.calls] == ["k1", "k2"]
    assert service.key_manager.get_key_stats()["active_keys"] == 1


def test_all_keys_failing_returns_apology(caplog) -> None:
    service = _service(["k1", "k2"], {"k1": _failed("Timeout"), "k2": _failed("500")})

    assert asyncio.run(service.generate("hello")) == APOLOGY_MESSAGE
    assert len(FakeProvider.calls) == 2
    assert "Gemini call failed" in caplog.text


def test_empty_response_is_not_cached() -> None:
    service = _service(["k1"], {"k1": _ok("   ")})

    assert asyncio.run(service.generate("hello")) == EMPTY_MESSAGE
    assert service.cache.get_stats()["total_entries"] == 0


def test_cache_entries_expire() -> None:
    ticks = [0.0]
    cache = ResponseCache(clock=lambda: ticks[0])
    cache.set("sys", "prompt", "m", "text", ttl_seconds=60)

    assert cache.get("sys", "prompt", "m") == "text"
    assert cache.get("sys", "prompt", "other-model") is None
    ticks[0] = 61
    assert cache.get("sys", "prompt", "m") is None


def test_key_rotation_is_round_robin() -> None:
    keys = KeyManager(["a", "b", "c"])
    assert [keys.get_next_key() for _ in range(4)] == ["a", "b", "c", "a"]

    keys.mark_exhausted("b")
    assert [keys.get_next_key() for _ in range(3)] == ["c", "a", "c"]

    for key in ("a", "c"):
        keys.mark_exhausted(key)
    assert keys.get_next_key() is None

    keys.reset_daily()
    assert keys.get_next_key() is not None


def test_insight_prompt_includes_data_and_question() -> None:
    prompt = build_insight_prompt("Focus by tag", [{"tag": "coding", "minutes": 90}], "Am I balanced?")

    assert prompt.startswith("Chart: Focus by tag")
    assert '"minutes": 90' in prompt
    assert "Question: Am I balanced?" in prompt


def test_coaching_summary_prompt_reflects_user_data(db) -> None:
    task = TaskService.create(db, USER_ID, {"text": "Draft chapter", "tags": ["writing"]}, NOW)
    PomodoroService.log_session(db, USER_ID, {"task_id": task.id, "duration_minutes": 50}, NOW)
    ProjectService.create(
        db, USER_ID, {"name": "Novel", "completion_criteria_type": "task_count", "completion_criteria_value": 10}, NOW
    )
    CommitmentService.create(db, USER_ID, {"text": "No phone before noon"}, NOW)

    service = _service(["k1"], {"k1": _ok("Great week!")})
    assert asyncio.run(service.coaching_summary(db, USER_ID, NOW)) == "Great week!"

    _, prompt, instruction, _ = FakeProvider.calls[0]
    assert instruction == COACH_INSTRUCTION
    assert "Total focus time: 50m" in prompt
    assert "Tasks completed: 1 of 1 (100%)" in prompt
    assert "- writing: 50m" in prompt
    assert "- Novel [active] (0/10 task_count)" in prompt
    assert "- No phone before noon" in prompt


class _SlowModel:
    def __init__(self, model_name, system_instruction=None):
        self.model_name = model_name

    async def generate_content_async(self, prompt):
        await asyncio.sleep(1)


class _QuotaModel(_SlowModel):
    async def generate_content_async(self, prompt):
        raise google_exceptions.ResourceExhausted("quota exceeded")


class _EchoModel(_SlowModel):
    async def generate_content_async(self, prompt):
        return SimpleNamespace(text=f"echo: {prompt}")


def test_gemini_provider_result_shapes(monkeypatch) -> None:
    import google.generativeai as genai

    provider = GeminiProvider(api_key="test-key", timeout=0.05)

    monkeypatch.setattr(genai, "GenerativeModel", _EchoModel)
    ok = asyncio.run(provider.generate("hi", model="gemini-test"))
    assert (ok["status"], ok["text"], ok["model"], ok["provider"]) == ("success", "echo: hi", "gemini-test", "gemini")

    monkeypatch.setattr(genai, "GenerativeModel", _SlowModel)
    slow = asyncio.run(provider.generate("hi"))
    assert (slow["status"], slow["error"], slow["exhausted"]) == ("failed", "Timeout", False)

    monkeypatch.setattr(genai, "GenerativeModel", _QuotaModel)
    quota = asyncio.run(provider.generate("hi"))
    assert quota["status"] == "failed"
    assert quota["exhausted"] is True
