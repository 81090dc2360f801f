"""Business logic for the upload pipeline and video records."""
