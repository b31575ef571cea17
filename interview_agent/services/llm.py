"""Thin wrapper over the OpenAI chat completions HTTP API.

We call the HTTP API directly with `requests` rather than the SDK. The
capability is deliberately small: ``complete(prompt, temperature)`` returns
the model's text or raises ``LLMError``. Callers decide what a failure means
(the interview pipeline falls back, question generation surfaces it).
"""
import json
import random
import re
import time

import requests
from flask import current_app

from ..errors import LLMError

_JSON_OBJECT = re.compile(r"\{[\s\S]*\}")
_JSON_ARRAY = re.compile(r"\[[\s\S]*\]")


def _retry_wait(resp, backoff):
    ra = resp.headers.get('Retry-After') if resp is not None else None
    if ra:
        try:
            return float(ra)
        except ValueError:
            # sometimes Retry-After is an HTTP-date; fallback to backoff
            return backoff
    return backoff


def _extract_text(jr):
    """Pull the assistant text out of a chat completions (or responses) payload."""
    if not isinstance(jr, dict):
        return ''
    choices = jr.get('choices')
    if choices:
        if not isinstance(choices, list) or not isinstance(choices[0], dict):
            raise LLMError('OpenAI payload had an unexpected shape')
        msg = choices[0].get('message') or {}
        if not isinstance(msg, dict):
            raise LLMError('OpenAI payload had an unexpected shape')
        content = msg.get('content')
        if isinstance(content, list):
            return '\n'.join(str(c.get('text') or '') for c in content if isinstance(c, dict))
        return content if isinstance(content, str) else ''
    # responses API shape
    text = jr.get('output_text') or ''
    if isinstance(text, str) and text:
        return text
    parts = []
    for item in jr.get('output') or []:
        if isinstance(item, dict):
            for c in item.get('content', []):
                if isinstance(c, dict) and 'text' in c:
                    parts.append(c['text'])
    return '\n'.join(parts)


def complete(prompt: str, temperature: float = 0.7, max_tokens: int = None) -> str:
    """Send ``prompt`` as a single user message and return the reply text.

    Retries rate limits, 5xx and network errors with exponential backoff
    (respecting Retry-After) up to ``LLM_MAX_ATTEMPTS``. Raises ``LLMError``
    when no usable text comes back.
    """
    api_key = current_app.config.get('OPENAI_API_KEY')
    if not api_key:
        raise LLMError('OPENAI_API_KEY is not configured')

    url = current_app.config.get('OPENAI_BASE_URL', 'https://api.openai.com/v1').rstrip('/') + '/chat/completions'
    headers = {'Authorization': f'Bearer {api_key}', 'Content-Type': 'application/json'}
    body = {
        'model': current_app.config.get('OPENAI_MODEL', 'gpt-4o-mini'),
        'messages': [{'role': 'user', 'content': prompt}],
        'temperature': temperature,
    }
    if max_tokens:
        body['max_tokens'] = max_tokens

    timeout = current_app.config.get('LLM_TIMEOUT_SEC', 30)
    max_attempts = max(1, int(current_app.config.get('LLM_MAX_ATTEMPTS', 3)))
    backoff = 1.0
    last_error = None
    for attempt in range(1, max_attempts + 1):
        try:
            r = requests.post(url, headers=headers, json=body, timeout=timeout)
        except requests.exceptions.RequestException as e:
            # network-level error; retry with backoff
            last_error = e
            current_app.logger.warning('OpenAI network error, attempt %s/%s: %s', attempt, max_attempts, e)
            if attempt < max_attempts:
                time.sleep(backoff + random.uniform(0, 0.5))
                backoff *= 2
            continue

        if r.status_code == 429 or 500 <= r.status_code < 600:
            body_text = r.text or ''
            # if the response body indicates insufficient_quota, don't retry
            if 'insufficient_quota' in body_text:
                current_app.logger.error('OpenAI 429 indicates insufficient quota; body=%s', body_text[:1000])
                raise LLMError('OpenAI quota exhausted')
            last_error = LLMError(f'OpenAI returned status {r.status_code}')
            wait = _retry_wait(r, backoff)
            current_app.logger.warning('OpenAI request returned %s, attempt %s/%s, retrying in %ss',
                                       r.status_code, attempt, max_attempts, wait)
            if attempt < max_attempts:
                time.sleep(wait + random.uniform(0, 0.5))
                backoff *= 2
            continue

        if r.status_code >= 400:
            # non-retryable HTTP error
            current_app.logger.error('OpenAI HTTP error %s: %s', r.status_code, (r.text or '')[:1000])
            raise LLMError(f'OpenAI returned status {r.status_code}')

        try:
            jr = r.json()
        except ValueError as e:
            raise LLMError('OpenAI payload was not JSON') from e
        try:
            text = (_extract_text(jr) or '').strip()
        except (KeyError, IndexError, TypeError, AttributeError) as e:
            raise LLMError('OpenAI payload had an unexpected shape') from e
        if not text:
            raise LLMError('OpenAI returned an empty completion')
        return text

    raise LLMError(f'OpenAI request failed after {max_attempts} attempts') from last_error


def extract_json(text: str, kind: str = 'object'):
    """Parse the first JSON object (or array) embedded in ``text``.

    Models often wrap JSON in prose or code fences. Raises ``ValueError``
    when nothing parseable is found.
    """
    pattern = _JSON_ARRAY if kind == 'array' else _JSON_OBJECT
    m = pattern.search(text or '')
    if not m:
        raise ValueError(f'no JSON {kind} in model output')
    data = json.loads(m.group(0))
    expected = list if kind == 'array' else dict
    if not isinstance(data, expected):
        raise ValueError(f'model output is not a JSON {kind}')
    return data
