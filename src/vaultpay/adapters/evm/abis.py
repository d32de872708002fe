"""
Reserve / Wrapped Token / Vault Contract ABI Module

Minimal ABI fragments for the calls the protocol client makes:

- reserve asset (USDT-like ERC-20): ``decimals``, ``balanceOf``,
  ``allowance``, ``approve``
- wrapped token (ERC-20 + ERC-3009 + EIP-5267): ``decimals``,
  ``balanceOf``, ``eip712Domain``
- vault: ``mint``, ``burnAndWithdraw``

Usage:
    from vaultpay.adapters.evm.abis import get_erc20_abi, get_vault_abi

    contract = web3.eth.contract(address=reserve_address, abi=get_erc20_abi())
    allowance = await contract.functions.allowance(owner, vault).call()
"""

from typing import Any, Dict, List


def get_decimals_abi() -> List[Dict[str, Any]]:
    """
    Get ABI for ERC-20 ``decimals()``.

    Returns:
        List[Dict[str, Any]]: ABI for the decimals function
    """
    return [
        {
            "name": "decimals",
            "type": "function",
            "stateMutability": "view",
            "inputs": [],
            "outputs": [{"name": "", "type": "uint8"}],
        }
    ]


def get_balance_abi() -> List[Dict[str, Any]]:
    """
    Get ABI for ERC-20 ``balanceOf(account)``.

    Returns:
        List[Dict[str, Any]]: ABI for the balanceOf function
    """
    return [
        {
            "name": "balanceOf",
            "type": "function",
            "stateMutability": "view",
            "inputs": [{"name": "account", "type": "address"}],
            "outputs": [{"name": "", "type": "uint256"}],
        }
    ]


def get_allowance_abi() -> List[Dict[str, Any]]:
    """
    Get ABI for ERC-20 ``allowance(owner, spender)``.

    Returns:
        List[Dict[str, Any]]: ABI for the allowance function
    """
    return [
        {
            "name": "allowance",
            "type": "function",
            "stateMutability": "view",
            "inputs": [
                {"name": "owner", "type": "address"},
                {"name": "spender", "type": "address"},
            ],
            "outputs": [{"name": "", "type": "uint256"}],
        }
    ]


def get_approve_abi() -> List[Dict[str, Any]]:
    """
    Get ABI for ERC-20 ``approve(spender, amount)``.

    The ``bool`` output is declared for standard tokens; mainnet USDT returns
    nothing, which web3 tolerates for transactions since only the receipt is
    inspected.
    """
    return [
        {
            "name": "approve",
            "type": "function",
            "stateMutability": "nonpayable",
            "inputs": [
                {"name": "spender", "type": "address"},
                {"name": "amount", "type": "uint256"},
            ],
            "outputs": [{"name": "", "type": "bool"}],
        }
    ]


def get_eip712_domain_abi() -> List[Dict[str, Any]]:
    """
    Get ABI for EIP-5267 ``eip712Domain()``.

    Returns ``(fields, name, version, chainId, verifyingContract, salt,
    extensions)``; only name, version, chainId and verifyingContract feed the
    ``TransferWithAuthorization`` domain.
    """
    return [
        {
            "name": "eip712Domain",
            "type": "function",
            "stateMutability": "view",
            "inputs": [],
            "outputs": [
                {"name": "fields", "type": "bytes1"},
                {"name": "name", "type": "string"},
                {"name": "version", "type": "string"},
                {"name": "chainId", "type": "uint256"},
                {"name": "verifyingContract", "type": "address"},
                {"name": "salt", "type": "bytes32"},
                {"name": "extensions", "type": "uint256[]"},
            ],
        }
    ]


def get_erc20_abi() -> List[Dict[str, Any]]:
    """Combined ABI for every ERC-20 call the client makes."""
    return (
        get_decimals_abi()
        + get_balance_abi()
        + get_allowance_abi()
        + get_approve_abi()
        + get_eip712_domain_abi()
    )


def get_vault_abi() -> List[Dict[str, Any]]:
    """
    Get ABI for the vault's ``mint(amount)`` and ``burnAndWithdraw(amount)``.

    ``mint`` pulls ``amount`` of the reserve asset (requires prior allowance)
    and issues the wrapped token; ``burnAndWithdraw`` burns the wrapped token
    and returns the reserve asset.
    """
    return [
        {
            "name": "mint",
            "type": "function",
            "stateMutability": "nonpayable",
            "inputs": [{"name": "amount", "type": "uint256"}],
            "outputs": [],
        },
        {
            "name": "burnAndWithdraw",
            "type": "function",
            "stateMutability": "nonpayable",
            "inputs": [{"name": "amount", "type": "uint256"}],
            "outputs": [],
        },
    ]


def get_abi_for_function(function_name: str) -> List[Dict[str, Any]]:
    """
    Resolve the ABI fragment that declares ``function_name``.

    Raises:
        KeyError: If no known ABI declares the function.
    """
    for entry in get_erc20_abi() + get_vault_abi():
        if entry["name"] == function_name:
            return [entry]
    raise KeyError(f"No ABI entry for function '{function_name}'")
