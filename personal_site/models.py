from personal_site import db


class VisitorEntry(db.Model):
    __tablename__ = "visitor_log"

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(120), nullable=False)
    signed_at = db.Column(db.DateTime(timezone=True), nullable=False, index=True)
    # Calendar day of signed_at in SITE_TIMEZONE; one signing per day.
    signed_day = db.Column(db.Date, nullable=False)

    __table_args__ = (db.UniqueConstraint("signed_day", name="uq_visitor_log_signed_day"),)

    def __repr__(self):
        return f"<VisitorEntry {self.name!r} {self.signed_day.isoformat()}>"
