import uuid

# prefixes in use: pay_ (payment rows), lst_ (listings), aud_ (audit rows), drf_ (drafts)
def gen_id(prefix: str) -> str:
    return f"{prefix}_{uuid.uuid4().hex}"
