"""
ca_bundler — trust bundle builder for intercepted TLS chains.

Fetches the certificate chain a remote host presents, classifies each
certificate against a configured root-CA marker, and writes the root and
intermediate CA certificates into a PEM trust bundle.

Built on the Railway-Oriented Programming (ROP) framework for
explicit, composable, functional error handling.
"""

__version__ = "0.1.0"
