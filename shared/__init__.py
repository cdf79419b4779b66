"""
Shared Kernel

Base classes and value objects shared by the stringing workflow apps.
"""
