"""
Tubely backend package.

Video and thumbnail ingestion service: uploads are classified by aspect
ratio, remuxed for fast start, stored in S3-compatible object storage and
served back through short-lived presigned URLs.
"""

__version__ = "1.0.0"
