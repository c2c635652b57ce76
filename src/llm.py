from typing import Any, Callable, Dict, Tuple

from openai import OpenAI

from logging_utils import _extract_openai_usage, _log_token_usage


def _generate_text(client: OpenAI, model: str, prompt: str) -> Tuple[str, Dict[str, int]]:
    """Single-turn completion; returns (content, usage). Errors propagate to the caller."""
    response = client.chat.completions.create(
        model=model,
        max_tokens=1500,
        temperature=0.8,
        top_p=0.95,
        messages=[
            {
                "role": "system",
                "content": "You write IQ test questions. Reply with JSON only, no markdown.",
            },
            {"role": "user", "content": prompt},
        ],
    )
    content = response.choices[0].message.content or ""
    return content.strip(), _extract_openai_usage(response)


def _make_generator(
    client: OpenAI,
    model: str,
    *,
    message: Dict[str, Any],
    pm_log_file: str,
    request_id: str,
    cmd: str,
) -> Callable[[str], str]:
    """Bind the LLM client to one request: generate(prompt) -> text, with token usage logged."""

    def generate(prompt: str) -> str:
        content, usage = _generate_text(client, model, prompt)
        if int(usage.get("total_tokens") or 0) > 0:
            _log_token_usage(
                message=message,
                pm_log_file=pm_log_file,
                request_id=request_id,
                cmd=cmd,
                purpose="question",
                model=model,
                usage=usage,
            )
        return content

    return generate
