import sqlalchemy as sa

metadata = sa.MetaData()

order_lines = sa.Table(
    "order_lines",
    metadata,
    sa.Column("id", sa.Integer, primary_key=True, autoincrement=True),
    sa.Column("order_id", sa.String(255), nullable=False),
    sa.Column("sku", sa.String(255), nullable=False),
    sa.Column("quantity", sa.Integer, nullable=False),
    sa.UniqueConstraint("order_id", "sku"),
)

batches = sa.Table(
    "batches",
    metadata,
    sa.Column("id", sa.Integer, primary_key=True, autoincrement=True),
    sa.Column("reference", sa.String(255), nullable=False, unique=True),
    sa.Column("sku", sa.String(255), nullable=False, index=True),
    sa.Column("purchased_quantity", sa.Integer, nullable=False),
    sa.Column("eta", sa.Date, nullable=True),
)

# a line is allocated to at most one batch
allocations = sa.Table(
    "allocations",
    metadata,
    sa.Column("id", sa.Integer, primary_key=True, autoincrement=True),
    sa.Column("order_line_id", sa.ForeignKey("order_lines.id"), nullable=False, unique=True),
    sa.Column("batch_id", sa.ForeignKey("batches.id"), nullable=False),
)
