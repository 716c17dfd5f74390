"""Static assets for the HTML report."""
