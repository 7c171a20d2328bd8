import click
from flask import Flask, jsonify
from flask_sqlalchemy import SQLAlchemy
from config import config

db = SQLAlchemy()


def create_app(config_name='default'):
    """Application factory — creates and configures the Flask app."""
    app = Flask(__name__)
    app.config.from_object(config[config_name])

    # ── Logging ───────────────────────────────────────────────────
    from app.utils.logging import setup_logging
    setup_logging(app)

    # ── Extensions ────────────────────────────────────────────────
    db.init_app(app)

    # ── Models ────────────────────────────────────────────────────
    from app import sales  # noqa: F401

    # ── Blueprints ────────────────────────────────────────────────
    from app.catalog import catalog as catalog_blueprint
    app.register_blueprint(catalog_blueprint, url_prefix='/catalog')

    from app.pos import pos as pos_blueprint
    app.register_blueprint(pos_blueprint, url_prefix='/pos')

    # ── Error Handlers ────────────────────────────────────────────
    @app.errorhandler(400)
    def bad_request(e):
        return jsonify({'success': False, 'message': 'Bad request'}), 400

    @app.errorhandler(404)
    def not_found(e):
        return jsonify({'success': False, 'message': 'Not found'}), 404

    @app.errorhandler(500)
    def internal_error(e):
        app.logger.error(f"Unhandled error: {e}")
        return jsonify({'success': False, 'message': 'Server error'}), 500

    @app.route('/health')
    def health():
        """Health check for load balancers and monitoring."""
        from sqlalchemy import text
        try:
            db.session.execute(text('SELECT 1'))
        except Exception as e:
            app.logger.error(f"Health check failed (DB): {e}")
            return jsonify({'status': 'error'}), 503
        return jsonify({'status': 'ok'})

    # ── CLI Commands ──────────────────────────────────────────────
    register_commands(app)

    # ── ProxyFix (HTTPS termination at the load balancer) ──
    from werkzeug.middleware.proxy_fix import ProxyFix
    app.wsgi_app = ProxyFix(app.wsgi_app, x_for=1, x_proto=1, x_host=1, x_prefix=1)

    return app


def register_commands(app):
    """Register custom Flask CLI commands."""

    @app.cli.command('init-db')
    def init_db():
        """Create all database tables and seed the held-ticket sequence for this year."""
        from datetime import date
        from app.sales.models import TicketSequence

        db.create_all()
        click.echo('✅  Database tables created.')

        year = date.today().year
        if not db.session.get(TicketSequence, year):
            db.session.add(TicketSequence(year=year, last_seq=0))
            db.session.commit()
            click.echo(f'✅  Ticket sequence seeded for {year} (starts at 0).')
        else:
            click.echo(f'ℹ️   Ticket sequence for {year} already exists.')

    @app.cli.command('held-tickets')
    @click.option('--limit', default=20, show_default=True, help='How many tickets to list')
    def held_tickets(limit):
        """List parked sales waiting to be resumed."""
        from app.sales.api import SqlSalesApi
        rows = SqlSalesApi(db.session).list_held(limit)
        if not rows:
            click.echo('No held tickets.')
            return
        click.echo(f'{"Ticket":<14} {"Items":>6} {"Total":>12}  {"Held at"}')
        click.echo('─' * 52)
        for row in rows:
            click.echo(f'{row.ticket_no:<14} {row.item_count:>6} {row.total:>12}  {row.created_at:%Y-%m-%d %H:%M}')

    @app.cli.command('seed-demo')
    def seed_demo():
        """Populate the catalog with demo products and discounts."""
        import random
        from decimal import Decimal
        from datetime import datetime, timedelta
        from app.catalog.models import Product, ProductDiscount

        click.echo("🌱 Seeding demo catalog...")
        db.create_all()

        if Product.query.count() < 5:
            names = ['Basmati Rice 5kg', 'Sugar 1kg', 'Tea Leaves 400g', 'Milk Powder 1kg',
                     'Coconut Oil 750ml', 'Dhal 1kg', 'Soap Bar', 'Toothpaste', 'Biscuits', 'Noodles']
            now = datetime.utcnow()
            for i, name in enumerate(names, start=1):
                retail = Decimal(random.randint(100, 3000))
                p = Product(
                    name=name,
                    barcode=f"DEMO{i:03d}",
                    retail_price=retail,
                    wholesale_price=(retail * Decimal('0.9')).quantize(Decimal('0.01')) if i % 2 else None,
                    stock=random.randint(0, 60),
                )
                db.session.add(p)
                db.session.flush()
                if i % 3 == 0:
                    db.session.add(ProductDiscount(
                        product_id=p.id, discount_type='percentage', value=Decimal('10'),
                        start_at=now - timedelta(days=1), end_at=now + timedelta(days=7),
                        notes='Demo weekly offer',
                    ))
            db.session.commit()
            click.echo("✅ Products seeded.")

        click.echo("✅ Demo seed complete.")
