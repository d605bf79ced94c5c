"""
ASGI entrypoint: expose `app` pour uvicorn / process managers.
Toute la configuration est centralisée dans storefront.app_setup.factory.
"""
from storefront.app_setup.factory import create_app

app = create_app()
