"""HTTP surface for the Homedash settings store."""
