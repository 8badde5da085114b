"""Product models.

- Product: a store listing. Imported listings point back at the supplier's
  listing via supplier_product_id and carry the paying reference in
  import_reference (unique, so one reference can create at most one copy).
- ProductImage: ordered image URLs for a product.
"""

import uuid

from vendorhub.extensions import db


class Product(db.Model):
    __tablename__ = "products"

    STATUSES = ["Active", "Draft", "Inactive"]

    id = db.Column(
        db.String(36), primary_key=True, default=lambda: str(uuid.uuid4())
    )
    store_id = db.Column(
        db.String(36), db.ForeignKey("stores.id"), nullable=False, index=True
    )
    name = db.Column(db.String(255), nullable=False)
    category = db.Column(db.String(100), nullable=True)
    price = db.Column(db.Numeric(12, 2), nullable=False)
    stock = db.Column(db.Integer, default=0, nullable=False)
    status = db.Column(db.String(20), default="Draft", nullable=False)
    description = db.Column(db.Text, nullable=True)
    sku = db.Column(db.String(100), nullable=True)
    tags = db.Column(db.JSON, default=list)
    weight = db.Column(db.Numeric(10, 3), nullable=True)  # kg
    dimensions = db.Column(db.JSON, nullable=True)  # {"length", "width", "height"}
    attributes = db.Column(db.JSON, default=dict)
    is_dropshippable = db.Column(db.Boolean, default=False, nullable=False)

    # --- Marketplace import traceability ---
    supplier_product_id = db.Column(
        db.String(36), db.ForeignKey("products.id"), nullable=True
    )
    supplier_price = db.Column(
        db.Numeric(12, 2), nullable=True
    )  # wholesale price offered to importers
    import_reference = db.Column(db.String(255), unique=True, nullable=True)

    created_at = db.Column(
        db.DateTime(timezone=True), server_default=db.func.now()
    )
    updated_at = db.Column(
        db.DateTime(timezone=True),
        server_default=db.func.now(),
        onupdate=db.func.now(),
    )

    # --- Relationships ---
    store = db.relationship("Store", back_populates="products")
    supplier_product = db.relationship("Product", remote_side=[id])
    images = db.relationship(
        "ProductImage",
        back_populates="product",
        order_by="ProductImage.sort_order",
        cascade="all, delete-orphan",
    )

    def __repr__(self):
        return f"<Product {self.name} ({self.status})>"


class ProductImage(db.Model):
    __tablename__ = "product_images"

    id = db.Column(
        db.String(36), primary_key=True, default=lambda: str(uuid.uuid4())
    )
    product_id = db.Column(
        db.String(36), db.ForeignKey("products.id"), nullable=False, index=True
    )
    url = db.Column(db.String(1000), nullable=False)
    sort_order = db.Column(db.Integer, default=0, nullable=False)

    product = db.relationship("Product", back_populates="images")

    def __repr__(self):
        return f"<ProductImage {self.product_id} #{self.sort_order}>"
