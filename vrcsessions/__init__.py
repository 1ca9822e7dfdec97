"""
VRChat world session and photo correlator.

Reads VRChat output logs, reconstructs the world sessions they describe, and
groups VRChat screenshots by the session they were taken in.
"""

__version__ = "0.1.0"
__author__ = "vrcsessions team"
