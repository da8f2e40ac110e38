# app/enums/document_type.py
from enum import Enum

class DocumentType(str, Enum):
    PROFILE_PHOTO = "profile_photo"
    ID_FRONT = "id_front"
    ID_BACK = "id_back"
