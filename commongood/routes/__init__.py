"""Routes package for the CommonGood API."""


def register_routes(app):
    """Register all route blueprints with the application."""
    from commongood import API_PREFIX
    from .auth import auth_bp
    from .users import users_bp
    from .listings import listings_bp
    from .conversations import conversations_bp
    from .reviews import reviews_bp

    app.register_blueprint(auth_bp, url_prefix=f'{API_PREFIX}/auth')
    app.register_blueprint(users_bp, url_prefix=f'{API_PREFIX}/users')
    app.register_blueprint(listings_bp, url_prefix=f'{API_PREFIX}/listings')
    app.register_blueprint(conversations_bp, url_prefix=f'{API_PREFIX}/conversations')
    app.register_blueprint(reviews_bp, url_prefix=f'{API_PREFIX}/reviews')
