from __future__ import annotations

from ..extensions import db
from app.time_utils import to_utc_z
from .inventory import Money

CONTACT_TYPE_CUSTOMER = "customer"
CONTACT_TYPE_VENDOR = "vendor"
CONTACT_TYPES = (CONTACT_TYPE_CUSTOMER, CONTACT_TYPE_VENDOR)


class Contact(db.Model):
    """
    Customer or vendor of a business.

    `type` is fixed at creation: customers appear on sales, vendors on
    purchases. `current_balance` is the amount the contact owes the business;
    it is raised by unpaid sale remainders and lowered by payments recorded
    against sales (never below zero on that path).
    """
    __tablename__ = "contacts"
    __table_args__ = (
        db.Index("ix_contacts_business_type", "business_id", "type"),
        db.Index("ix_contacts_business_active", "business_id", "is_active"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    business_id = db.Column(db.Integer, db.ForeignKey("businesses.id"), nullable=False, index=True)

    type = db.Column(db.String(16), nullable=False)
    name = db.Column(db.String(255), nullable=False)
    code_name = db.Column(db.String(64), nullable=True)
    phone = db.Column(db.String(32), nullable=False)
    email = db.Column(db.String(255), nullable=True)
    gstin = db.Column(db.String(15), nullable=True)

    street = db.Column(db.String(255), nullable=True)
    city = db.Column(db.String(128), nullable=True)
    state = db.Column(db.String(128), nullable=True)
    zip_code = db.Column(db.String(16), nullable=True)
    country = db.Column(db.String(64), nullable=True)

    notes = db.Column(db.Text, nullable=True)

    current_balance = db.Column(Money, nullable=False, default=0)
    is_active = db.Column(db.Boolean, nullable=False, default=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), onupdate=db.func.now())

    business = db.relationship("Business", backref=db.backref("contacts", lazy=True))
    custom_prices = db.relationship(
        "ContactProductPrice",
        back_populates="contact",
        cascade="all, delete-orphan",
        lazy=True,
    )

    def __repr__(self) -> str:
        return f"<Contact id={self.id} type={self.type} name={self.name!r}>"

    def address_dict(self) -> dict:
        return {
            "street": self.street,
            "city": self.city,
            "state": self.state,
            "zipCode": self.zip_code,
            "country": self.country,
        }

    def to_summary(self, include_address: bool = False) -> dict:
        data = {"id": self.id, "name": self.name, "phone": self.phone, "email": self.email}
        if include_address:
            data["address"] = self.address_dict()
            data["GSTIN"] = self.gstin
        return data

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "businessId": self.business_id,
            "type": self.type,
            "name": self.name,
            "codeName": self.code_name,
            "phone": self.phone,
            "email": self.email,
            "GSTIN": self.gstin,
            "address": self.address_dict(),
            "notes": self.notes,
            "currentBalance": self.current_balance,
            "isActive": self.is_active,
            "customProductPrices": [cp.to_dict() for cp in self.custom_prices],
            "createdAt": to_utc_z(self.created_at),
            "updatedAt": to_utc_z(self.updated_at),
        }


class ContactProductPrice(db.Model):
    """Per-contact special price (tax inclusive) for a product."""
    __tablename__ = "contact_product_prices"
    __table_args__ = (
        db.UniqueConstraint("contact_id", "product_id", name="uq_contact_product_price"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    contact_id = db.Column(db.Integer, db.ForeignKey("contacts.id"), nullable=False, index=True)
    product_id = db.Column(db.Integer, db.ForeignKey("products.id"), nullable=False, index=True)
    inclusive_price = db.Column(Money, nullable=False)

    contact = db.relationship("Contact", back_populates="custom_prices")
    product = db.relationship("Product")

    def to_dict(self) -> dict:
        return {
            "productId": self.product_id,
            "productName": self.product.name if self.product else None,
            "inclusivePrice": self.inclusive_price,
        }
