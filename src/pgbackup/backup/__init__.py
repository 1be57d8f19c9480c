"""Dump, compress and upload building blocks.

Modules:
    dump: run pg_dump inside a container and expose its output stream
    compressor: gzip a byte stream into a local file
    uploader: object key naming and S3 upload
    pipeline: the single-shot backup run tying the above together
"""
