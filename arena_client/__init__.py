"""Client side mirror of a snake arena room."""
