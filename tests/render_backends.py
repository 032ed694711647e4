"""
Render backends for tests, loaded by the render worker as ``tests.render_backends:<name>``.

They stand in for WeasyPrint: a PDF header followed by the HTML source.
"""

import time


def echo_pdf(document: str) -> bytes:
    return b"%PDF-1.7\n" + document.encode("utf-8")


def hang_on_marker(document: str) -> bytes:
    """Never returns for documents containing HANG."""
    if "HANG" in document:
        time.sleep(60)
    return echo_pdf(document)


def slow(document: str) -> bytes:
    time.sleep(60)
    return echo_pdf(document)


def broken(document: str) -> bytes:
    raise RuntimeError("fonts missing")


def empty(document: str) -> bytes:
    return b""
