"""TokenGate - short-lived lease allocator."""
