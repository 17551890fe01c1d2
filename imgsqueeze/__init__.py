"""Lossless in-place optimization of images stored in S3 buckets."""

__version__ = "0.1.0"
