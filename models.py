from datetime import datetime, timezone

from extensions import db

CATEGORY_GROUPS = ('Income', 'Expense', 'Investment')
TRANSACTION_TYPES = ('income', 'expense', 'investment')
STOCK_TYPES = ('BUY', 'SELL')
ACTIVITY_ICONS = ('success', 'warning', 'info', 'error')

STATUS_ACTIVE = 'active'
STATUS_TERMINATED = 'terminated'


def utcnow():
    return datetime.now(timezone.utc).replace(tzinfo=None)


def _iso(value):
    return value.isoformat() if value else None


# Database Models
class User(db.Model):
    __tablename__ = 'users'

    id = db.Column(db.Integer, primary_key=True)
    email = db.Column(db.String(255), nullable=False, unique=True)
    full_name = db.Column(db.String(200), nullable=False)
    password_hash = db.Column(db.String(100), nullable=False)
    email_verified = db.Column(db.Boolean, nullable=False, default=False)
    enable_budget_alerts = db.Column(db.Boolean, nullable=False, default=False)
    monthly_budget = db.Column(db.Float, nullable=True)
    created_at = db.Column(db.DateTime, default=utcnow)
    updated_at = db.Column(db.DateTime, default=utcnow, onupdate=utcnow)

    # Everything a user owns goes away with the account
    categories = db.relationship('Category', backref='user', cascade='all, delete-orphan', passive_deletes=True)
    transactions = db.relationship('Transaction', backref='user', cascade='all, delete-orphan', passive_deletes=True)
    budgets = db.relationship('Budget', backref='user', cascade='all, delete-orphan', passive_deletes=True)
    stocks = db.relationship('Stock', backref='user', cascade='all, delete-orphan', passive_deletes=True)
    activity_logs = db.relationship('ActivityLog', backref='user', cascade='all, delete-orphan', passive_deletes=True)

    def to_dict(self):
        return {
            'id': self.id,
            'email': self.email,
            'fullName': self.full_name,
            'enableBudgetAlerts': self.enable_budget_alerts,
            'monthlyBudget': self.monthly_budget,
            'createdAt': _iso(self.created_at),
        }


class Category(db.Model):
    __tablename__ = 'categories'

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey('users.id', ondelete='CASCADE'), nullable=False, index=True)
    name = db.Column(db.String(100), nullable=False)
    category_group = db.Column(db.String(20), nullable=False)  # Income, Expense, Investment
    is_default = db.Column(db.Boolean, nullable=False, default=False)
    created_at = db.Column(db.DateTime, default=utcnow)

    __table_args__ = (db.UniqueConstraint('user_id', 'category_group', 'name', name='unique_user_category'),)

    def to_dict(self):
        return {
            'id': self.id,
            'userId': self.user_id,
            'name': self.name,
            'categoryGroup': self.category_group,
            'isDefault': self.is_default,
            'createdAt': _iso(self.created_at),
        }


class Transaction(db.Model):
    __tablename__ = 'transactions'

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey('users.id', ondelete='CASCADE'), nullable=False, index=True)
    type = db.Column(db.String(20), nullable=False)  # income, expense, investment
    amount = db.Column(db.Float, nullable=False)
    date = db.Column(db.Date, nullable=False, index=True)
    category = db.Column(db.String(100), nullable=True)
    category_group = db.Column(db.String(20), nullable=True)
    sub_category = db.Column(db.String(100), nullable=True)
    notes = db.Column(db.Text, nullable=True)
    category_id = db.Column(db.Integer, db.ForeignKey('categories.id', ondelete='SET NULL'), nullable=True)
    status = db.Column(db.String(20), nullable=False, default=STATUS_ACTIVE)
    created_at = db.Column(db.DateTime, default=utcnow)
    updated_at = db.Column(db.DateTime, default=utcnow, onupdate=utcnow)

    category_rel = db.relationship('Category', backref=db.backref('transactions', passive_deletes=True))

    @property
    def category_name(self):
        """Linked category name, falling back to the stored label"""
        if self.category_rel is not None:
            return self.category_rel.name
        return self.category or 'Uncategorized'

    @property
    def is_terminated(self):
        return self.status == STATUS_TERMINATED

    def to_dict(self):
        return {
            'id': self.id,
            'userId': self.user_id,
            'amount': self.amount,
            'date': _iso(self.date),
            'type': self.type,
            'notes': self.notes,
            'description': self.notes or '',
            'category': self.category_name,
            'categoryId': self.category_id,
            'categoryGroup': self.category_group,
            'subCategory': self.sub_category,
            'status': self.status,
            'createdAt': _iso(self.created_at),
            'updatedAt': _iso(self.updated_at),
        }


class Budget(db.Model):
    __tablename__ = 'budgets'

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey('users.id', ondelete='CASCADE'), nullable=False, index=True)
    category_id = db.Column(db.Integer, db.ForeignKey('categories.id', ondelete='CASCADE'), nullable=False)
    amount = db.Column(db.Float, nullable=False, default=0.0)
    month = db.Column(db.String(7), nullable=False)  # YYYY-MM
    created_at = db.Column(db.DateTime, default=utcnow)
    updated_at = db.Column(db.DateTime, default=utcnow, onupdate=utcnow)

    category = db.relationship('Category', backref=db.backref('budgets', cascade='all, delete-orphan', passive_deletes=True))

    __table_args__ = (db.UniqueConstraint('user_id', 'category_id', 'month', name='unique_user_category_month'),)

    def to_dict(self, spent=None):
        data = {
            'id': self.id,
            'userId': self.user_id,
            'amount': self.amount,
            'month': self.month,
            'categoryId': self.category_id,
            'category': self.category.name if self.category else 'Unknown',
        }
        if spent is not None:
            data['spent'] = spent
        return data


class Stock(db.Model):
    __tablename__ = 'stocks'

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey('users.id', ondelete='CASCADE'), nullable=False, index=True)
    symbol = db.Column(db.String(30), nullable=False)
    name = db.Column(db.String(200), nullable=False)
    quantity = db.Column(db.Float, nullable=False)
    buy_price = db.Column(db.Float, nullable=False)
    sell_price = db.Column(db.Float, nullable=True)
    current_price = db.Column(db.Float, nullable=True)
    broker = db.Column(db.String(100), nullable=True)
    type = db.Column(db.String(4), nullable=False, default='BUY')  # BUY, SELL
    date = db.Column(db.DateTime, nullable=False, default=utcnow)
    created_at = db.Column(db.DateTime, default=utcnow)
    updated_at = db.Column(db.DateTime, default=utcnow, onupdate=utcnow)

    def to_dict(self):
        return {
            'id': self.id,
            'userId': self.user_id,
            'symbol': self.symbol,
            'name': self.name,
            'quantity': self.quantity,
            'buyPrice': self.buy_price,
            'sellPrice': self.sell_price,
            'currentPrice': self.current_price,
            'broker': self.broker,
            'type': self.type,
            'date': _iso(self.date),
            'createdAt': _iso(self.created_at),
            'updatedAt': _iso(self.updated_at),
            'totalValue': self.quantity * self.buy_price,
        }


class ActivityLog(db.Model):
    __tablename__ = 'activity_logs'

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey('users.id', ondelete='CASCADE'), nullable=False, index=True)
    action = db.Column(db.String(50), nullable=False)
    description = db.Column(db.Text, nullable=False)
    icon = db.Column(db.String(10), nullable=False, default='info')
    # "metadata" is reserved on declarative models
    details = db.Column('metadata', db.JSON, nullable=True)
    is_dismissed = db.Column(db.Boolean, nullable=False, default=False)
    created_at = db.Column(db.DateTime, default=utcnow, index=True)

    def to_dict(self):
        return {
            'id': self.id,
            'userId': self.user_id,
            'action': self.action,
            'description': self.description,
            'icon': self.icon,
            'metadata': self.details,
            'isDismissed': self.is_dismissed,
            'createdAt': _iso(self.created_at),
        }
