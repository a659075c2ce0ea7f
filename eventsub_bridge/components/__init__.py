"""In-process consumers: chat listener and EventSub event logger."""
