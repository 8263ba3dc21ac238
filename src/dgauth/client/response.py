"""Response helpers shared by the transport, the orchestrator and the CLI.

:func:`extract_response_data` decodes a body (identity records, failure
payloads); :func:`format_api_response` routes a response through the
output system for the ``dgauth request`` command.

See Also:
    :mod:`dgauth.output` -- the output manager that renders data.
"""

from __future__ import annotations

from typing import Any

import httpx

from dgauth.output import get_output


def format_api_response(response: httpx.Response) -> None:
    """Print the status line to stderr and the decoded body to stdout.

    Args:
        response: The :class:`httpx.Response` to format and display.
    """
    output = get_output()
    output.info(f"HTTP {response.status_code} {response.reason_phrase or ''}")

    data = extract_response_data(response)
    if data is not None:
        output.format_response(data)


def extract_response_data(response: httpx.Response) -> Any:
    """Extract the body from an HTTP response.

    Attempts to parse the body as JSON first. If that fails (e.g. the
    response is HTML or plain text), returns the raw text. Returns ``None``
    for responses with no content.
    """
    if not response.content:
        return None

    try:
        return response.json()
    except ValueError:
        pass

    return response.text
