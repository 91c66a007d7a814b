"""Transactional composition of PCDM resources in a Fedora repository."""
