"""Minimal demonstration of the elicitation proxy."""

from proxy_core import run_proxy_chat

if __name__ == "__main__":
    conversation_id = "demo-1"
    for message in ("hello", "We call water tui.", "okay"):
        reply = run_proxy_chat({"message": message, "conversationId": conversation_id})
        print("Trainer:", message)
        print(f"Agent ({reply['provider']}):", reply["response"])
