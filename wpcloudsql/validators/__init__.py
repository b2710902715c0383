"""Validators for database hosts and proxy peers."""

from wpcloudsql.validators.address import is_private_address, is_trusted_peer, parse_networks

__all__ = ["is_private_address", "is_trusted_peer", "parse_networks"]
