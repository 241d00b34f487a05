"""Tax field extraction from CFDI invoice XML."""
