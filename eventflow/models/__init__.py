from .mongo_models import EventDocument, PyObjectId, UserDocument

__all__ = ["EventDocument", "PyObjectId", "UserDocument"]
