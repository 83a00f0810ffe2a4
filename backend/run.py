from auction import create_app, socketio

app = create_app()

if __name__ == '__main__':
    # Use SocketIO server so viewers get timer and roster pushes in dev
    socketio.run(app, debug=True)
