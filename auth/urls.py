from __future__ import annotations

import urllib.parse

CALLBACK_PATH = "/callback"


def build_redirect_url(proto: str, host: str, port: str | int, path: str = CALLBACK_PATH) -> str:
    netloc = f"{host}:{port}" if str(port).strip() else host
    return urllib.parse.urlunparse((proto, netloc, path, "", "", ""))


def append_query_params(url: str, params: dict[str, str]) -> str:
    parsed = urllib.parse.urlparse(url)
    existing = urllib.parse.parse_qs(parsed.query, keep_blank_values=True)
    for key, value in params.items():
        existing[key] = [value]

    new_query = urllib.parse.urlencode(existing, doseq=True)
    return urllib.parse.urlunparse(parsed._replace(query=new_query))
