from google.cloud.firestore_v1 import Client as FirestoreClient, CollectionReference, DocumentReference


def get_collection_path(client: FirestoreClient, collection: str) -> CollectionReference:
    return client.collection(collection)

def get_document_path(client: FirestoreClient, collection: str, document_id: str) -> DocumentReference:
    return client.collection(collection).document(document_id)
