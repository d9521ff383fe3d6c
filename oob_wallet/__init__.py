"""Wallet engine for out-of-band invitations and trust-on-first-use connections."""
