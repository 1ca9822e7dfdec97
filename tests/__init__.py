"""
Tests for the VRChat session parser.

This package contains tests for:
- Value objects and timestamp parsing
- Log pattern classification and event extraction
- World session reconstruction
- Photo to session correlation
- Configuration and the command-line interface
"""
