"""Components - governance, admission, variants, pending staging and access."""
