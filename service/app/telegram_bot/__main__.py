from .bot import run_polling

if __name__ == "__main__":
    run_polling()
