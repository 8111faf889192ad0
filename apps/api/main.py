"""Thin API launcher.

uvicorn entrypoint; all application logic lives in the cofish package.
Run with: uvicorn main:app --reload

The app is created here rather than in cofish.app so importing create_app
has no side effects and tests can build their own instances.
"""

from cofish.app import add_request_id_middleware, create_app

app = create_app()
# Added last so it runs first (outermost)
add_request_id_middleware(app)

__all__ = ["app"]
