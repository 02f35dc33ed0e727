"""Wire-level tests for secure stream frames.

These tests validate byte-exact frame layout against the json5 vectors.

Test categories:
- test_wire_format.py: Header encoding, truncation vectors, frame layout
"""
