# Public value types shared by the splitter, the payload assembler and the
# key-shares document. Field aliases are the camelCase names used in the
# persisted JSON.

from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, StrictInt, StrictStr


class Model(BaseModel):
    model_config = ConfigDict(frozen=True, populate_by_name=True, extra="forbid")

    def to_json_dict(self):
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


class Operator(Model):
    id: StrictInt
    public_key: StrictStr = Field(alias="publicKey")


class Share(Model):
    operator_id: StrictInt = Field(alias="operatorId")
    public_key: StrictStr = Field(alias="publicKey")
    # 0x-hex ABI `string` holding the base64 RSA ciphertext
    encrypted_key: StrictStr = Field(alias="encryptedKey")


class PayloadReadable(Model):
    validator_public_key: StrictStr = Field(alias="validatorPublicKey")
    operator_ids: List[StrictInt] = Field(alias="operatorIds")
    share_public_keys: List[StrictStr] = Field(alias="sharePublicKeys")
    encrypted_shares: List[StrictStr] = Field(alias="encryptedShares")
    owner_address: Optional[StrictStr] = Field(default=None, alias="ownerAddress")
    owner_nonce: Optional[StrictInt] = Field(default=None, alias="ownerNonce")
    token_amount: Optional[StrictInt] = Field(default=None, alias="tokenAmount")


class Payload(Model):
    readable: PayloadReadable
    raw: StrictStr
