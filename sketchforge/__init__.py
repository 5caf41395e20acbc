"""
Sketch-to-Application Generation

A pipeline that interprets hand-drawn sketches with vision language models and
turns the result into either drawable canvas elements or a complete, archived
front-end project.
"""

__version__ = "0.1.0"
