"""Built-in plugins shipped with grouped_validations."""
