"""Row pipeline services (mapping, transforms, validation, events, coalescence, runner)."""
