"""
Flask CLI commands.
"""

from openpyxl import Workbook

from stockledger.models import Business, Category, Product, Supplier
from stockledger.services.import_template import TEMPLATE_HEADERS


class TestSystemCommands:
    def test_init_is_idempotent(self, app, db_session):
        runner = app.test_cli_runner()

        first = runner.invoke(args=["system", "init", "--business", "Tienda Uno"])
        second = runner.invoke(args=["system", "init", "--business", "Tienda Uno"])

        assert first.exit_code == 0
        assert "Using existing business" in second.output
        business = db_session.query(Business).filter_by(name="Tienda Uno").one()
        assert db_session.query(Category).filter_by(business_id=business.id, is_essential=True).count() == 1
        assert db_session.query(Supplier).filter_by(business_id=business.id, is_essential=True).count() == 1


class TestInventoryCommands:
    def test_template_then_import(self, app, db_session, business, category, supplier, tmp_path):
        runner = app.test_cli_runner()
        template = tmp_path / "plantilla.xlsx"

        result = runner.invoke(args=["inventory", "template", str(template), "--business-id", str(business.id)])
        assert result.exit_code == 0
        assert template.exists()

        wb = Workbook()
        wb.active.append(list(TEMPLATE_HEADERS))
        wb.active.append(["A-1", "Cable", 100, 200, 5, category.code, supplier.code])
        wb.active.append(["A-1", "Cable repetido", 100, 200, 5, category.code, supplier.code])
        filled = tmp_path / "productos.xlsx"
        wb.save(filled)

        result = runner.invoke(args=["inventory", "import", str(filled), "--business-id", str(business.id)])

        assert result.exit_code == 0
        assert "Created 1 products" in result.output
        assert "FAIL Row 3" in result.output
        assert db_session.query(Product).filter_by(business_id=business.id, code="A-1").count() == 1

    def test_import_unknown_business(self, app, db_session, tmp_path):
        path = tmp_path / "x.xlsx"
        Workbook().save(path)

        result = app.test_cli_runner().invoke(args=["inventory", "import", str(path), "--business-id", "424242"])

        assert result.exit_code != 0
        assert "not found" in result.output
