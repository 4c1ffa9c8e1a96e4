"""
Service layer: the persistence gateway and the data store facade.
"""
