"""Dominio: modelos Pydantic, errores tipados e idioma de mensajes.

No conoce HTTP, CLI ni SDKs de proveedores.
"""
