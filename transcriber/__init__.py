"""
Core package for the large-audio transcription pipeline.

This package contains the modular components used by the HTTP entrypoint to
classify an upload by size, compress or split oversized audio, submit it to
a remote speech-to-text endpoint, and combine the partial transcripts.
"""
