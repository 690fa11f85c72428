"""Domain services and the ordered collection engine."""
