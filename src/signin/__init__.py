"""Google sign-in and account linking service."""
