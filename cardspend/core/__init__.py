"""Settings, logging, timezone helpers and the shared error hierarchy."""
