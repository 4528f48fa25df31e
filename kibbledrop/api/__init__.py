# kibbledrop/api/__init__.py
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.staticfiles import StaticFiles

from kibbledrop.api.errors import register_exception_handlers
from kibbledrop.api.routers import (
    admin_orders,
    admin_products,
    admin_users,
    auth,
    carts,
    health,
    orders,
    pets,
    products,
    stripe_payments,
    subscriptions,
    tradesafe,
    tradesafe_graphql,
    uploads,
    users,
)
from kibbledrop.utils.settings import CORS_ORIGINS, UPLOAD_DIR


def create_app(lifespan=None) -> FastAPI:
    app = FastAPI(
        title="KibbleDrop",
        version="1.0.0",
        lifespan=lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    register_exception_handlers(app)

    # Include routers
    app.include_router(health.router)
    app.include_router(auth.router)
    app.include_router(users.router)
    app.include_router(products.router)
    app.include_router(carts.router)
    app.include_router(orders.router)
    app.include_router(subscriptions.router)
    app.include_router(pets.router)
    app.include_router(uploads.router)
    app.include_router(admin_products.router)
    app.include_router(admin_orders.router)
    app.include_router(admin_users.router)
    app.include_router(stripe_payments.router)
    app.include_router(tradesafe.router)
    app.include_router(tradesafe_graphql.router)

    # the directory is created at startup or by the first upload
    app.mount("/uploads", StaticFiles(directory=UPLOAD_DIR, check_dir=False), name="uploads")

    return app
