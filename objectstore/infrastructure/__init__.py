"""Infrastructure: storage backends, security, and storage exceptions."""
