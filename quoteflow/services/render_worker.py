"""
Child-process entry point for HTML to PDF conversion.

    python -m quoteflow.services.render_worker package.module:function

Reads the HTML document from stdin, calls the named backend
(``str -> bytes``) and writes the PDF to stdout. A failing backend exits
with status 1 and a one-line reason on stderr.

The parent kills this process when a render runs past its timeout, so
nothing here needs to watch the clock.
"""

import importlib
import sys

DEFAULT_BACKEND = "quoteflow.services.render_worker:weasyprint_backend"


def weasyprint_backend(document: str) -> bytes:
    """Render HTML to PDF with WeasyPrint."""
    from weasyprint import HTML
    return HTML(string=document).write_pdf()


def load_backend(reference: str):
    """Resolve a ``module:function`` reference."""
    module_name, sep, attr = reference.partition(":")
    if not sep or not module_name or not attr:
        raise ValueError(f"Render backend must look like 'module:function', got {reference!r}")
    return getattr(importlib.import_module(module_name), attr)


def main(argv=None) -> int:
    argv = sys.argv[1:] if argv is None else argv
    reference = argv[0] if argv else DEFAULT_BACKEND

    try:
        backend = load_backend(reference)
        document = sys.stdin.buffer.read().decode("utf-8")
        pdf = backend(document)
    except Exception as e:
        sys.stderr.write(f"{type(e).__name__}: {e}\n")
        return 1

    sys.stdout.buffer.write(pdf or b"")
    sys.stdout.buffer.flush()
    return 0


if __name__ == "__main__":
    sys.exit(main())
