class MergedDailyLog:
    """Reconciled view of every raw record for one (intern, day). Never stored."""

    def __init__(self, intern_id, date, am_log=None, pm_log=None, primary_id=None,
                 source_ids=None, intern=None):
        self.intern_id = intern_id
        self.date = date  # ISO day key, e.g. "2024-01-10"
        self.am_log = am_log
        self.pm_log = pm_log
        self.primary_id = primary_id
        self.source_ids = source_ids or []
        self.intern = intern

    @property
    def is_complete(self):
        return self.am_log is not None and self.pm_log is not None

    @property
    def status(self):
        if self.is_complete:
            return "complete"
        if self.am_log is not None:
            return "am-only"
        if self.pm_log is not None:
            return "pm-only"
        return "empty"

    @property
    def intern_name(self):
        return (self.intern or {}).get("name") or ""

    @property
    def company(self):
        return (self.intern or {}).get("company")

    def to_dict(self):
        return {
            "_id": self.primary_id,
            "internId": self.intern_id,
            "date": self.date,
            "amLog": self.am_log,
            "pmLog": self.pm_log,
            "sourceIds": self.source_ids,
            "intern": self.intern,
            "isComplete": self.is_complete,
        }

    def __eq__(self, other):
        if not isinstance(other, MergedDailyLog):
            return NotImplemented
        return self.to_dict() == other.to_dict()

    def __repr__(self):
        return f"<MergedDailyLog {self.intern_id} {self.date} {self.status}>"
