"""Use-case façade over extraction, stores, reports and notification."""
