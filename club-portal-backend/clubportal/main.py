import os
from urllib.parse import quote_plus

import dotenv
from flask import Flask, jsonify
import logging

from clubportal.extensions import limiter, migrate
from clubportal.models.club import db
from clubportal.routes.drills import drills_bp
from clubportal.routes.formations import formations_bp
from clubportal.routes.tactics import tactics_bp

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)

dotenv.load_dotenv()


def _database_uri() -> str:
    """DATABASE_URL wins (e.g. SQLite for local work); otherwise build a psycopg URI from DB_* parts."""
    database_url = os.getenv("DATABASE_URL")
    if database_url:
        return database_url

    pwd     = quote_plus(os.getenv("DB_PASSWORD") or "")   # encodes @, !, :, / …
    user    = os.getenv("DB_USER")
    host    = os.getenv("DB_HOST", "localhost")
    port    = os.getenv("DB_PORT", "5432")
    db_name = os.getenv("DB_NAME")
    return f"postgresql+psycopg://{user}:{pwd}@{host}:{port}/{db_name}"


def _seed_on_startup() -> bool:
    return (os.getenv("CLUBPORTAL_SEED_FORMATIONS") or "").strip().lower() in ("1", "true", "yes", "on")


logger.info("Starting club portal API...")

app = Flask(__name__)
app.config['SECRET_KEY'] = os.getenv('SECRET_KEY')
app.config["SQLALCHEMY_DATABASE_URI"] = _database_uri()
app.config['SQLALCHEMY_TRACK_MODIFICATIONS'] = False
app.config['TACTIC_RESOLUTION_CACHE_SIZE'] = int(os.getenv('TACTIC_RESOLUTION_CACHE_SIZE', '256'))

logger.info(f"Secret key configured: {'Yes' if app.config['SECRET_KEY'] else 'No'}")
logger.info(f"Using database driver: {app.config['SQLALCHEMY_DATABASE_URI'].split(':', 1)[0]}")

db.init_app(app)
limiter.init_app(app)
migrate.init_app(app, db)

app.register_blueprint(formations_bp, url_prefix='/api')
app.register_blueprint(tactics_bp, url_prefix='/api')
app.register_blueprint(drills_bp, url_prefix='/api')


@app.route('/api/health', methods=['GET'])
def health():
    return jsonify({'status': 'ok'})


if _seed_on_startup():
    from clubportal.scripts.seed_formations import seed_formations

    with app.app_context():
        seed_formations()


if __name__ == "__main__":
    # Only run when you execute `python -m clubportal.main`,
    # NOT when Flask CLI imports the app.
    with app.app_context():
        logger.info("Creating database tables...")
        db.create_all()

    app.run(host="0.0.0.0", port=5001, debug=True)
