import streamlit as st
import httpx
import sys
import os

# Add root directory to sys.path to allow imports from core
sys.path.append(os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))

from core.config import settings

st.set_page_config(page_title="Weather & News Chat", layout="wide")
st.title("Weather & News Chat")

if "http" not in st.session_state:
    # The API identifies us by the user_id cookie; keep one client per browser session
    st.session_state.http = httpx.Client(base_url=settings.API_URL, timeout=120.0)

if "chat_id" not in st.session_state:
    st.session_state.chat_id = None

if "messages" not in st.session_state:
    st.session_state.messages = []

client: httpx.Client = st.session_state.http


def open_chat(chat_id):
    st.session_state.chat_id = chat_id
    st.session_state.messages = []
    if chat_id:
        resp = client.get(f"/chats/{chat_id}/messages")
        if resp.is_success:
            st.session_state.messages = [
                {"role": m["role"], "content": m["content"]} for m in resp.json()
            ]


# Sidebar: chat history
st.sidebar.title("Chats")
if st.sidebar.button("New chat", use_container_width=True):
    open_chat(None)

try:
    chats = client.get("/chats").json()
except httpx.HTTPError as e:
    chats = []
    st.sidebar.error(f"Cannot reach the chat API: {e}")

for chat in chats:
    label = chat["title"] or "Untitled"
    if st.sidebar.button(label, key=chat["id"], use_container_width=True):
        open_chat(chat["id"])

# Render chat history
for msg in st.session_state.messages:
    with st.chat_message(msg["role"]):
        st.markdown(msg["content"])

user_input = st.chat_input("Ask about the weather or the news")

if user_input:
    st.chat_message("user").write(user_input)
    st.session_state.messages.append({"role": "user", "content": user_input})

    with st.chat_message("assistant"):
        with st.spinner("Thinking..."):
            try:
                resp = client.post(
                    "/chat",
                    json={"messages": st.session_state.messages, "chatId": st.session_state.chat_id},
                )
            except httpx.HTTPError as e:
                resp = None
                st.error(f"Request failed: {e}")

        if resp is not None and resp.is_success:
            data = resp.json()
            st.markdown(data["message"])
            st.session_state.messages.append({"role": "assistant", "content": data["message"]})
            if st.session_state.chat_id != data["chatId"]:
                st.session_state.chat_id = data["chatId"]
                st.rerun()
        elif resp is not None:
            st.error(resp.json().get("detail", "Something went wrong"))
            # The user message was not answered; drop it so it can be resent
            st.session_state.messages.pop()
