"""Authorization, data scoping and invitation lifecycle rules."""
