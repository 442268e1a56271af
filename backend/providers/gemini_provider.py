import asyncio

from google.api_core import exceptions as google_exceptions

from config import AI_TIMEOUT_SECONDS, GEMINI_MODEL
from providers.base import BaseProvider


class GeminiProvider(BaseProvider):
    """Provider for Google Gemini using the official SDK."""

    def __init__(self, api_key: str, timeout: float = AI_TIMEOUT_SECONDS):
        self.api_key = api_key
        self.timeout = timeout

    @property
    def name(self) -> str:
        return "gemini"

    def _result(self, model: str, text: str | None = None, error: str | None = None, exhausted: bool = False) -> dict:
        return {
            "text": text,
            "provider": self.name,
            "model": model,
            "status": "failed" if error else "success",
            "error": error,
            "exhausted": exhausted,
        }

    async def generate(self, prompt: str, system_instruction: str | None = None, model: str | None = None) -> dict:
        used_model = model or GEMINI_MODEL
        try:
            import google.generativeai as genai
            # SDK configuration is module-global, so set it per call for key rotation
            genai.configure(api_key=self.api_key)

            g_model = genai.GenerativeModel(model_name=used_model, system_instruction=system_instruction)
            response = await asyncio.wait_for(g_model.generate_content_async(prompt), timeout=self.timeout)
            return self._result(used_model, text=response.text or "")
        except asyncio.TimeoutError:
            return self._result(used_model, error="Timeout")
        except google_exceptions.ResourceExhausted as e:
            return self._result(used_model, error=str(e), exhausted=True)
        except Exception as e:
            return self._result(used_model, error=str(e))
