"""Edge service for WordPress on Google Cloud SQL."""
