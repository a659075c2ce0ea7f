"""Core modules: settings, credentials, EventSub webhook handling and scheduling."""
