from __future__ import annotations

from ..extensions import db


class Category(db.Model):
    """
    Product classification.

    ESSENTIAL ROW:
    Each business owns exactly one category with is_essential=True ("General").
    It is created lazily by the fallback resolver and receives products whose
    category is missing or deleted. The partial unique index below guarantees
    that two concurrent first-time lookups cannot both create one.
    """
    __tablename__ = "categories"
    __table_args__ = (
        db.UniqueConstraint("business_id", "code", name="uq_categories_business_code"),
        db.Index(
            "uq_categories_business_essential",
            "business_id",
            unique=True,
            sqlite_where=db.text("is_essential = 1"),
            postgresql_where=db.text("is_essential"),
        ),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    business_id = db.Column(db.Integer, db.ForeignKey("businesses.id"), nullable=False, index=True)

    code = db.Column(db.Integer, nullable=False)
    description = db.Column(db.String(255), nullable=False)
    color_code = db.Column(db.String(16), nullable=True)
    is_essential = db.Column(db.Boolean, nullable=False, default=False)

    business = db.relationship("Business", backref=db.backref("categories", lazy=True))

    def __repr__(self) -> str:
        return f"<Category id={self.id} code={self.code} business_id={self.business_id}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "business_id": self.business_id,
            "code": self.code,
            "description": self.description,
            "color_code": self.color_code,
            "is_essential": self.is_essential,
        }


class Supplier(db.Model):
    """Product supplier. Same essential-row rule as Category ("Proveedor Propio")."""
    __tablename__ = "suppliers"
    __table_args__ = (
        db.UniqueConstraint("business_id", "code", name="uq_suppliers_business_code"),
        db.Index(
            "uq_suppliers_business_essential",
            "business_id",
            unique=True,
            sqlite_where=db.text("is_essential = 1"),
            postgresql_where=db.text("is_essential"),
        ),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    business_id = db.Column(db.Integer, db.ForeignKey("businesses.id"), nullable=False, index=True)

    code = db.Column(db.Integer, nullable=False)
    rut = db.Column(db.String(32), nullable=False, default="Sin Datos")
    name = db.Column(db.String(255), nullable=False)
    fantasy_name = db.Column(db.String(255), nullable=False)
    address = db.Column(db.String(255), nullable=False, default="Sin Datos")
    city = db.Column(db.String(120), nullable=False, default="Sin Datos")
    phone = db.Column(db.String(64), nullable=False, default="Sin Datos")
    email = db.Column(db.String(255), nullable=False, default="Sin Datos")
    is_essential = db.Column(db.Boolean, nullable=False, default=False)

    business = db.relationship("Business", backref=db.backref("suppliers", lazy=True))

    def __repr__(self) -> str:
        return f"<Supplier id={self.id} code={self.code} business_id={self.business_id}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "business_id": self.business_id,
            "code": self.code,
            "rut": self.rut,
            "name": self.name,
            "fantasy_name": self.fantasy_name,
            "address": self.address,
            "city": self.city,
            "phone": self.phone,
            "email": self.email,
            "is_essential": self.is_essential,
        }
