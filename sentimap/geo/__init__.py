"""Geographic data model, projection and clustering."""
