"""
Core decision layers: patient, parameters, protocols, clinical, session.
"""
