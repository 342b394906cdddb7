from __future__ import annotations

import requests
from requests.adapters import HTTPAdapter


def build_http_session(pool_size: int = 10) -> requests.Session:
    """Pooled session shared by one vendor client. Retries are disabled."""
    session = requests.Session()
    adapter = HTTPAdapter(max_retries=0, pool_connections=pool_size, pool_maxsize=pool_size)
    session.mount("http://", adapter)
    session.mount("https://", adapter)
    return session


def error_detail(resp: requests.Response) -> str:
    try:
        body = resp.json()
    except ValueError:
        return (resp.text or "")[:500]
    if isinstance(body, dict):
        err = body.get("error")
        if isinstance(err, dict):
            return str(err.get("message") or err.get("type") or err)
        if err:
            return str(err)
    return str(body)[:500]
