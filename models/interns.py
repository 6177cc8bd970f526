import re

from pymongo import ReturnDocument
from pymongo.errors import DuplicateKeyError
from werkzeug.security import check_password_hash, generate_password_hash

from utils.db import mongo, to_object_id
from utils.dates import utcnow
from utils.errors import ConflictError, ValidationError

REQUIRED_FIELDS = ("name", "email", "studentId", "company", "companyAddress")
MIN_PASSWORD_LENGTH = 6

# Fields returned alongside a log when the intern is joined in
SUMMARY_FIELDS = ("name", "email", "studentId", "company", "profilePicture")


class Intern:

    @staticmethod
    def collection():
        return mongo.db.interns

    def __init__(self, name, email, student_id, password, company, company_address,
                 phone=None, profile_picture=None, must_change_password=True,
                 created_at=None, updated_at=None):
        self.name = name
        self.email = email.strip().lower()
        self.student_id = student_id.strip()
        self.password = generate_password_hash(password)
        self.company = company
        self.company_address = company_address
        self.phone = phone
        self.profile_picture = profile_picture
        self.must_change_password = must_change_password
        self.created_at = created_at or utcnow()
        self.updated_at = updated_at or self.created_at

    # Convert to dictionary for MongoDB
    def to_dict(self):
        return {
            "name": self.name,
            "email": self.email,
            "studentId": self.student_id,
            "password": self.password,
            "phone": self.phone,
            "company": self.company,
            "companyAddress": self.company_address,
            "profilePicture": self.profile_picture,
            "mustChangePassword": self.must_change_password,
            "createdAt": self.created_at,
            "updatedAt": self.updated_at,
        }

    # Save new intern
    def save(self):
        if Intern.identity_taken(self.email, self.student_id):
            raise ConflictError("Email or Student ID already exists")
        try:
            return Intern.collection().insert_one(self.to_dict())
        except DuplicateKeyError:
            raise ConflictError("Email or Student ID already exists")

    @staticmethod
    def validate_fields(data):
        missing = [field for field in REQUIRED_FIELDS if not str(data.get(field) or "").strip()]
        if missing:
            raise ValidationError(
                "Name, email, student ID, company, and company address are required",
                field=missing[0],
            )

    @staticmethod
    def find_by_id(intern_id):
        return Intern.collection().find_one({"_id": to_object_id(intern_id, "internId")})

    @staticmethod
    def find_many(intern_ids):
        ids = []
        for intern_id in intern_ids:
            try:
                ids.append(to_object_id(intern_id, "internId"))
            except ValidationError:
                continue
        if not ids:
            return []
        return list(Intern.collection().find({"_id": {"$in": ids}}))

    @staticmethod
    def find_by_student_id(student_id):
        return Intern.collection().find_one({"studentId": student_id.strip()})

    @staticmethod
    def ids_for_company(company):
        return [doc["_id"] for doc in Intern.collection().find({"company": company}, {"_id": 1})]

    @staticmethod
    def identity_taken(email, student_id, exclude_id=None):
        query = {"$or": [{"email": email.strip().lower()}, {"studentId": student_id.strip()}]}
        if exclude_id is not None:
            query["_id"] = {"$ne": to_object_id(exclude_id, "internId")}
        return Intern.collection().find_one(query) is not None

    @staticmethod
    def search(search=None, company=None):
        query = {}
        if search:
            pattern = re.escape(search.strip())
            query["$or"] = [
                {"name": {"$regex": pattern, "$options": "i"}},
                {"email": {"$regex": pattern, "$options": "i"}},
                {"studentId": {"$regex": pattern, "$options": "i"}},
            ]
        if company:
            query["company"] = company
        return list(Intern.collection().find(query))

    @staticmethod
    def update(intern_id, data):
        oid = to_object_id(intern_id, "internId")
        Intern.validate_fields(data)
        if Intern.identity_taken(data["email"], data["studentId"], exclude_id=oid):
            raise ConflictError("Email or Student ID already exists")
        changes = {
            "name": data["name"].strip(),
            "email": data["email"].strip().lower(),
            "studentId": data["studentId"].strip(),
            "phone": (data.get("phone") or "").strip() or None,
            "company": data["company"].strip(),
            "companyAddress": data["companyAddress"].strip(),
            "updatedAt": utcnow(),
        }
        return Intern.collection().find_one_and_update(
            {"_id": oid}, {"$set": changes}, return_document=ReturnDocument.AFTER
        )

    @staticmethod
    def delete(intern_id):
        return Intern.collection().find_one_and_delete({"_id": to_object_id(intern_id, "internId")})

    # Verify password
    @staticmethod
    def verify_password(intern, password):
        return bool(intern and password and check_password_hash(intern["password"], password))

    @staticmethod
    def change_password(intern_id, new_password):
        if len(new_password or "") < MIN_PASSWORD_LENGTH:
            raise ValidationError(
                f"New password must be at least {MIN_PASSWORD_LENGTH} characters",
                field="newPassword",
            )
        return Intern.collection().update_one(
            {"_id": to_object_id(intern_id, "internId")},
            {"$set": {
                "password": generate_password_hash(new_password),
                "mustChangePassword": False,
                "updatedAt": utcnow(),
            }}
        )

    @staticmethod
    def set_profile_picture(intern_id, image_url):
        return Intern.collection().update_one(
            {"_id": to_object_id(intern_id, "internId")},
            {"$set": {"profilePicture": image_url, "updatedAt": utcnow()}}
        )

    @staticmethod
    def summary(intern):
        """Public view of an intern document (no credential hash)."""
        if not intern:
            return None
        data = {"_id": intern["_id"]}
        for field in SUMMARY_FIELDS + ("phone", "companyAddress", "mustChangePassword", "createdAt"):
            if field in intern:
                data[field] = intern[field]
        return data
