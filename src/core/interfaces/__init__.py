"""Contratos del Core (`typing.Protocol`).

Almacén de configuración, adaptador de proveedor y scraper: el orquestador
solo conoce estos protocolos; las implementaciones viven en `adapters`.
"""
