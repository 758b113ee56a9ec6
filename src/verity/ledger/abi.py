"""ABI of the EvidenceRegistry contract deployed on each ledger network."""


def _string(name: str) -> dict:
    return {"name": name, "type": "string", "internalType": "string"}


EVIDENCE_STRUCT = {
    "name": "",
    "type": "tuple",
    "internalType": "struct EvidenceRegistry.Evidence",
    "components": [
        _string("plate"),
        _string("ipfsCid"),
        _string("hash"),
        {"name": "timestamp", "type": "uint256", "internalType": "uint256"},
        {"name": "submittedBy", "type": "address", "internalType": "address"},
        {"name": "exists", "type": "bool", "internalType": "bool"},
    ],
}

EVIDENCE_REGISTRY_ABI = [
    {
        "name": "storeEvidence",
        "type": "function",
        "inputs": [_string("recordId"), _string("plate"), _string("ipfsCid"), _string("hash")],
        "outputs": [],
        "stateMutability": "nonpayable",
    },
    {
        "name": "updateEvidence",
        "type": "function",
        "inputs": [_string("recordId"), _string("newIpfsCid"), _string("newHash")],
        "outputs": [],
        "stateMutability": "nonpayable",
    },
    {
        "name": "getEvidence",
        "type": "function",
        "inputs": [_string("recordId")],
        "outputs": [EVIDENCE_STRUCT],
        "stateMutability": "view",
    },
    {
        "name": "recordExists",
        "type": "function",
        "inputs": [_string("recordId")],
        "outputs": [{"name": "", "type": "bool", "internalType": "bool"}],
        "stateMutability": "view",
    },
    {
        "name": "getTotalRecords",
        "type": "function",
        "inputs": [],
        "outputs": [{"name": "", "type": "uint256", "internalType": "uint256"}],
        "stateMutability": "view",
    },
    {
        "name": "getRecordIdByIndex",
        "type": "function",
        "inputs": [{"name": "index", "type": "uint256", "internalType": "uint256"}],
        "outputs": [_string("")],
        "stateMutability": "view",
    },
    {
        "name": "EvidenceStored",
        "type": "event",
        "anonymous": False,
        "inputs": [
            {**_string("recordId"), "indexed": True},
            {**_string("plate"), "indexed": False},
            {**_string("ipfsCid"), "indexed": False},
            {**_string("hash"), "indexed": False},
            {"name": "timestamp", "type": "uint256", "internalType": "uint256", "indexed": False},
            {"name": "submittedBy", "type": "address", "internalType": "address", "indexed": True},
        ],
    },
]
