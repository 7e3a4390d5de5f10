import os, requests
from utils import get_logger

DEFAULT_API_URL = "https://api.openai.com/v1/chat/completions"
DEFAULT_MODEL = "gpt-4o-mini"
MAX_SUMMARY_LINES = 6

SYSTEM_PROMPT = (
    "You are a helpful system performance assistant. When given information about a performance "
    "spike (high CPU or RAM usage), provide a brief 2-3 sentence summary explaining the likely cause "
    "and 2-3 actionable next steps. Be concise and practical. Focus on the top processes shown."
)


def build_prompt(metric: str, value: float, top_processes: str, spike_seconds: float) -> str:
    return (
        "Performance Alert:\n"
        f"- {metric} usage: {value:.1f}%\n"
        f"- Duration: Sustained for {spike_seconds:g}+ seconds\n\n"
        f"Top {metric}-consuming processes:\n{top_processes}\n\n"
        "Provide a brief summary and recommended next steps:"
    )


def cleanup_response(text: str) -> str:
    if not text or not text.strip():
        return ""
    text = text.replace("Assistant:", "").replace("AI:", "").strip()
    lines = [line for line in text.split("\n") if line.strip()]
    return "\n".join(lines[:MAX_SUMMARY_LINES])


class SummaryGenerator:
    """Asks an OpenAI-compatible chat endpoint to explain a spike.

    Every failure (no key, HTTP error, timeout, malformed reply) yields "".
    """

    def __init__(self, model: str = DEFAULT_MODEL, api_url: str = DEFAULT_API_URL,
                 api_key_env: str = "OPENAI_API_KEY", spike_seconds: float = 10, logger=None):
        self.model = model
        self.api_url = api_url
        self.api_key_env = api_key_env
        self.spike_seconds = spike_seconds
        self.log = logger or get_logger()

    @property
    def ready(self) -> bool:
        return bool(os.environ.get(self.api_key_env))

    def generate_summary(self, metric: str, value: float, top_processes: str, timeout: float) -> str:
        api_key = os.environ.get(self.api_key_env)
        if not api_key:
            return ""
        headers = {
            "Authorization": f"Bearer {api_key}",
            "Content-Type": "application/json"
        }
        payload = {
            "model": self.model,
            "messages": [
                {"role": "system", "content": SYSTEM_PROMPT},
                {"role": "user", "content": build_prompt(metric, value, top_processes, self.spike_seconds)},
            ],
            "temperature": 0.7
        }
        try:
            r = requests.post(self.api_url, headers=headers, json=payload, timeout=timeout)
            if not r.ok:
                self.log.debug(f"Summary request failed: HTTP {r.status_code}")
                return ""
            return cleanup_response(r.json()["choices"][0]["message"]["content"])
        except requests.RequestException as e:
            self.log.debug(f"Summary request failed: {e}")
        except (ValueError, KeyError, IndexError, TypeError) as e:
            self.log.debug(f"Unexpected summary response: {e}")
        return ""
