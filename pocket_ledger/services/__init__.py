"""
External Services Package

Storage backends, the local cache, OCR and credential handling.
Import from the subpackages directly.
"""
