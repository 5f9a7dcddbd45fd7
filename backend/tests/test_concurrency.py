"""
Concurrent sale tests against a file-backed database.

Verifies:
- Parallel carts for the same product never oversell
- Every refused cart reports InsufficientStockError, nothing else
"""

import threading
from concurrent.futures import ThreadPoolExecutor

import pytest

from shopledger import create_app
from shopledger.errors import InsufficientStockError
from shopledger.extensions import db
from shopledger.models import Product, Transaction
from shopledger.services import sales_service


@pytest.fixture
def file_app(tmp_path):
    """Application on its own SQLite file so each thread gets a real connection."""
    app = create_app({
        'TESTING': True,
        'SQLALCHEMY_DATABASE_URI': f"sqlite:///{tmp_path / 'shop.sqlite3'}",
        'SQLALCHEMY_ENGINE_OPTIONS': {
            'connect_args': {'timeout': 30, 'check_same_thread': False},
        },
    })
    with app.app_context():
        db.create_all()
    yield app
    with app.app_context():
        db.session.remove()
        db.engine.dispose()


class TestConcurrentSales:

    @pytest.mark.parametrize("workers,stock", [(8, 5), (6, 1)])
    def test_no_oversell(self, file_app, workers, stock):
        with file_app.app_context():
            product = Product(name="Tea", quantity=stock, created_by="alice")
            db.session.add(product)
            db.session.commit()
            product_id = product.id

        start = threading.Barrier(workers)

        def _sell(_):
            with file_app.app_context():
                item = {"product_id": product_id, "product_name": "Tea", "quantity": 1, "price": 2}
                start.wait()
                try:
                    sales_service.complete_sale([item], operator="alice")
                    return "ok"
                except InsufficientStockError:
                    return "short"
                finally:
                    db.session.remove()

        with ThreadPoolExecutor(max_workers=workers) as pool:
            results = list(pool.map(_sell, range(workers)))

        assert results.count("ok") == stock
        assert results.count("short") == workers - stock

        with file_app.app_context():
            assert db.session.get(Product, product_id).quantity == 0
            assert db.session.query(Transaction).count() == stock
