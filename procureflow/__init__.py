"""
ProcureFlow: quote comparison and allocation service.
"""
