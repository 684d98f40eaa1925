from __future__ import annotations

from ..extensions import db
from app.time_utils import to_utc_z

# Money columns: two decimal places, read back as float
Money = db.Numeric(12, 2, asdecimal=False)


class Product(db.Model):
    """
    Product master data.

    MULTI-TENANT: Products are scoped to a business via business_id.

    STOCK: `stock` is a plain on-hand counter. It is changed only by the
    transaction workflow (decrement on sale, increment on purchase) or by a
    direct edit. Sales decrement it with a conditional UPDATE so it never
    goes below zero.

    Products are never deleted, only deactivated.
    """
    __tablename__ = "products"
    __table_args__ = (
        db.Index("ix_products_business_name", "business_id", "name"),
        db.Index("ix_products_business_active", "business_id", "is_active"),
        db.CheckConstraint("stock >= 0", name="ck_products_stock_non_negative"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    business_id = db.Column(db.Integer, db.ForeignKey("businesses.id"), nullable=False, index=True)

    name = db.Column(db.String(255), nullable=False)
    category = db.Column(db.String(128), nullable=False, index=True)
    description = db.Column(db.Text, nullable=True)

    # Unit price as entered (the UI treats it as tax-inclusive)
    price = db.Column(Money, nullable=False, default=0)

    stock = db.Column(db.Integer, nullable=False, default=0)
    min_stock_level = db.Column(db.Integer, nullable=False, default=0)

    # GST classification and rates (percent)
    hsn = db.Column(db.String(16), nullable=True)
    cgst = db.Column(db.Numeric(5, 2, asdecimal=False), nullable=False, default=0)
    sgst = db.Column(db.Numeric(5, 2, asdecimal=False), nullable=False, default=0)

    is_active = db.Column(db.Boolean, nullable=False, default=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
        onupdate=db.func.now(),
    )

    business = db.relationship("Business", backref=db.backref("products", lazy=True))

    @property
    def is_low_stock(self) -> bool:
        return self.stock <= self.min_stock_level

    def __repr__(self) -> str:
        return f"<Product id={self.id} name={self.name!r} stock={self.stock} business_id={self.business_id}>"

    def to_summary(self) -> dict:
        return {"id": self.id, "name": self.name, "category": self.category, "HSN": self.hsn}

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "businessId": self.business_id,
            "name": self.name,
            "category": self.category,
            "description": self.description,
            "price": self.price,
            "stock": self.stock,
            "minStockLevel": self.min_stock_level,
            "HSN": self.hsn,
            "cgst": self.cgst,
            "sgst": self.sgst,
            "isActive": self.is_active,
            "isLowStock": self.is_low_stock,
            "createdAt": to_utc_z(self.created_at),
            "updatedAt": to_utc_z(self.updated_at),
        }
