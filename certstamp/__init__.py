"""
CertStamp: issue QR-stamped PDF certificates and verify them by identifier.
"""
