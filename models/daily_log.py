from utils.db import mongo, to_object_id
from utils.dates import day_start


class DailyLog:
    @staticmethod
    def collection():
        return mongo.db.daily_logs

    @staticmethod
    def find_by_id(log_id):
        return DailyLog.collection().find_one({"_id": to_object_id(log_id, "logId")})

    @staticmethod
    def find_for_day(intern_id, date):
        """All raw records for (intern, day); more than one only after a duplicate write."""
        return list(DailyLog.collection().find({
            "internId": to_object_id(intern_id, "internId"),
            "date": day_start(date),
        }))

    @staticmethod
    def fetch(query, sort=None, limit=500):
        cursor = DailyLog.collection().find(query)
        if sort:
            cursor = cursor.sort(sort)
        return list(cursor.limit(limit))

    @staticmethod
    def delete(log_id):
        return DailyLog.collection().delete_one({"_id": to_object_id(log_id, "logId")})

    @staticmethod
    def find_for_intern(intern_id):
        return list(DailyLog.collection().find({"internId": to_object_id(intern_id, "internId")}))

    @staticmethod
    def delete_for_intern(intern_id):
        return DailyLog.collection().delete_many({"internId": to_object_id(intern_id, "internId")})

    @staticmethod
    def count_for_intern(intern_id):
        return DailyLog.collection().count_documents({"internId": to_object_id(intern_id, "internId")})


"""
A stored document looks like:
{
    "internId": ObjectId("..."),
    "date": datetime(2024, 1, 10),        # UTC midnight
    "amLog": {"imageUrl": "...", "location": {...}, "timestamp": ..., "period": "AM", ...},
    "pmLog": {... "period": "PM" ...},
    "createdAt": ..., "updatedAt": ...
}
"""
