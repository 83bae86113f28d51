"""
Module 'erp' (feature-first): intégration Bling (jetons OAuth, catalogue).
"""
