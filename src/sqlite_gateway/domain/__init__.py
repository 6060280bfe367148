"""Domain layer: value model, SQL synthesis, schema parsing and the wire protocol."""
