import os
import json
from dotenv import load_dotenv
import requests

load_dotenv()

OLLAMA = os.getenv("OLLAMA_BASE_URL", "http://localhost:11434")
LLM_MODEL = os.getenv("LLM_MODEL", "llama3.1:8b")
LLM_TIMEOUT = float(os.getenv("LLM_TIMEOUT", "120"))

def ollama_generate(prompt: str, model: str = None, temperature: float = 0.2,
                    system: str = None, json_mode: bool = False) -> str:
    model = model or LLM_MODEL
    url = f"{OLLAMA}/api/generate"
    payload = {
        "model": model,
        "prompt": prompt,
        "options": {"temperature": temperature},
        "stream": False  # important
    }
    if system:
        payload["system"] = system
    if json_mode:
        payload["format"] = "json"
    resp = requests.post(url, json=payload, timeout=LLM_TIMEOUT)
    resp.raise_for_status()
    return resp.json().get("response", "") or ""

def extract_json(s: str) -> dict:
    """Return the first balanced JSON object found in ``s``.

    Models tend to wrap their answer in prose or <think> blocks, so the
    object is located by brace depth rather than by parsing the whole
    string. Raises ValueError when no valid object is present.
    """
    if not s:
        raise ValueError("Empty model output")
    start = s.find("{")
    if start == -1:
        raise ValueError("No '{' found in model output")

    depth = 0
    end = -1
    for i in range(start, len(s)):
        ch = s[i]
        if ch == "{":
            depth += 1
        elif ch == "}":
            depth -= 1
            if depth == 0:
                end = i
                break
    if end == -1:
        raise ValueError("No matching '}' found for JSON object")

    try:
        data = json.loads(s[start:end + 1])
    except json.JSONDecodeError as e:
        raise ValueError(f"Extracted text is not valid JSON: {e}") from e
    if not isinstance(data, dict):
        raise ValueError("Model output is not a JSON object")
    return data
