"""Detection pipeline services."""
