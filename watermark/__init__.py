"""Watermark pipeline.

This package decodes uploaded images, composites a logo onto each of them
with Pillow and packages the results for preview and download. See
``image_ops`` for the compositor and ``batch`` for the batch runner.
"""
