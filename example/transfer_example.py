from vaultpay import (
    AllowanceMintEngine,
    AuthorizationSigner,
    LocalAccountSigner,
    RelayerClient,
    SettlementCoordinator,
    TokenBalance,
    Web3ChainClient,
    get_chain_config,
)
import httpx
import logging

rpc_url = "https://ethereum-sepolia-rpc.publicnode.com"  # Replace with your RPC endpoint
wpk = "0xxxx"  # Replace with actual private key
recipient = "0x0000000000000000000000000000000000000000"  # Replace with actual recipient

contracts = get_chain_config(11155111).contracts


async def main():
    chain = Web3ChainClient(rpc_url, wpk)

    reserve_balance = TokenBalance(chain, contracts.reserve)
    await reserve_balance.refresh()
    engine = AllowanceMintEngine(chain, contracts)
    if await engine.approve("10", known_balance=reserve_balance.balance):
        await engine.mint("10")
    if engine.error:
        print("Mint failed:", engine.error_message)

    token_balance = TokenBalance(chain, contracts.token)
    await token_balance.refresh()
    signer = AuthorizationSigner(chain, LocalAccountSigner(wpk), contracts.token)

    async with RelayerClient(timeout=httpx.Timeout(60.0, read=120.0)) as relayer:
        coordinator = SettlementCoordinator(signer, relayer, balance=token_balance)
        coordinator.subscribe(lambda snapshot: print("State:", snapshot.state.value))
        await coordinator.execute_transfer(recipient, "5")

    return coordinator.snapshot


if __name__ == "__main__":
    import asyncio
    logging.basicConfig(level=logging.INFO)
    snapshot = asyncio.run(main())
    print("Result:", snapshot.tx_result or snapshot.error)
