"""Infrastructure clients: authentication, MongoDB and S3."""
