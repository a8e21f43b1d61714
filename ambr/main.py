"""
Entrypoint module for uvicorn.

Run as:

    uvicorn ambr.main:app

or `ambr serve`.
"""

from ambr.api import create_app

app = create_app()
